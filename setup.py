from setuptools import setup, find_packages
import pathlib

# Detect layout
use_src = pathlib.Path("src/monoplan").exists()
pkg_args = {"package_dir": {"": "src"}, "packages": find_packages(where="src")} if use_src \
           else {"packages": find_packages(where=".")}

setup(
    name="monoplan",
    version="0.1.0",
    description="Planning core of a monorepo task runner",
    python_requires=">=3.9",
    include_package_data=True,
    package_data={"monoplan": ["templates/*.j2"]},
    install_requires=[
        "typer",
        "pydantic>=2",
        "pyyaml",
        "jinja2",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio"],
    },
    entry_points={
        "console_scripts": ["monoplan=monoplan.cli:app"],
    },
    **pkg_args
)
