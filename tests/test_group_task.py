import pytest

from monoplan.plan import Planner
from monoplan.tasks import CommandAction, GroupAction, Pre


def _command(package, name, *pres):
    builder = package.new_task(name).set_action(CommandAction("echo", (name,)))
    for pre in pres:
        builder.add_pre(pre)
    return builder.register()


def _group(package, name, *members, attrs=None):
    return package.new_task(name).set_action(GroupAction(members)).add_attrs(attrs or {}).register()


@pytest.mark.asyncio
async def test_group_delegates_to_same_named_member_tasks(tree, setup):
    group = _group(tree.root, "build", "./packages/*")
    a_build = _command(tree.get("a"), "build")
    b_build = _command(tree.get("b"), "build")
    release = _command(tree.root, "release", Pre("build"))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.has_order(group, a_build)
    assert plan.has_order(group, b_build)
    assert plan.has_order(a_build, release)
    assert plan.has_order(b_build, release)
    assert not plan.has_order(group, release)
    assert plan.is_parallel(a_build, b_build)


@pytest.mark.asyncio
async def test_group_first_arg_names_the_sub_task(tree, setup):
    _group(tree.root, "each", "./packages/*")
    a_test = _command(tree.get("a"), "test")
    b_test = _command(tree.get("b"), "test")
    release = _command(tree.root, "release", Pre("each", args=("test", "--ci")))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.call_of(a_test).params().args == ["--ci"]
    assert plan.call_of(b_test).params().args == ["--ci"]
    assert plan.has_order(a_test, release)


@pytest.mark.asyncio
async def test_group_option_args_pass_through(tree, setup):
    _group(tree.root, "build", "./packages/*")
    a_build = _command(tree.get("a"), "build")
    _command(tree.get("b"), "build")
    release = _command(tree.root, "release", Pre("build", args=("--watch",)))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.call_of(a_build).params().args == ["--watch"]


@pytest.mark.asyncio
async def test_group_reached_by_alias_delegates_requested_name(tree, setup):
    alias = _group(tree.root, "lint/release", "./packages/*")
    a_lint = _command(tree.get("a"), "lint")
    b_lint = _command(tree.get("b"), "lint")
    release = _command(tree.root, "release", Pre("lint"))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.has_order(alias, a_lint)
    assert plan.has_order(alias, b_lint)
    assert plan.has_order(a_lint, release)


@pytest.mark.asyncio
async def test_group_passes_its_attrs_to_sub_tasks(tree, setup):
    _group(tree.root, "build", "./packages/*", attrs={"env": "ci"})
    a_build = _command(tree.get("a"), "build")
    _command(tree.get("b"), "build")
    release = _command(tree.root, "release", Pre("build"))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.call_of(a_build).params().attrs == {"env": ["ci"]}


@pytest.mark.asyncio
async def test_group_without_members_is_a_plain_prerequisite(tree, setup):
    group = _group(tree.root, "noop")
    release = _command(tree.root, "release", Pre("noop"))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.has_order(group, release)
    assert len(plan.calls) == 2


@pytest.mark.asyncio
async def test_group_including_itself_skips_itself(tree, setup):
    group = _group(tree.root, "build", "./**")
    a_build = _command(tree.get("a"), "build")
    b_build = _command(tree.get("b"), "build")
    release = _command(tree.root, "release", Pre("build"))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.has_order(group, a_build)
    assert plan.has_order(group, b_build)
    assert not plan.has_order(group, group)
    assert {c.ref for c in plan.calls} == {release.ref, group.ref, a_build.ref, b_build.ref}


@pytest.mark.asyncio
async def test_group_sub_task_prerequisites_are_planned(tree, setup):
    _group(tree.root, "build", "./packages/*")
    a_compile = _command(tree.get("a"), "compile")
    a_build = _command(tree.get("a"), "build", Pre("compile"))
    _command(tree.get("b"), "build")
    release = _command(tree.root, "release", Pre("build"))

    plan = (await Planner(setup).plan(release)).plan

    assert plan.has_order(a_compile, a_build)
    assert plan.has_order(a_build, release)
    assert not plan.has_order(a_compile, release)
