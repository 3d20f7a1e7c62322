import pytest

from monoplan.config import PlanSetup
from monoplan.packages import PackageTree


@pytest.fixture
def setup():
    return PlanSetup()


@pytest.fixture
def tree(tmp_path):
    """Root package plus packages/a and packages/b."""
    tree = PackageTree(tmp_path)
    tree.add("root", ".")
    tree.add("a", "packages/a")
    tree.add("b", "packages/b")
    return tree
