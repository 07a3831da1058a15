from __future__ import annotations

from pathlib import Path

import tomllib
from setuptools import find_packages, setup


def _load_metadata() -> dict[str, object]:
    project = tomllib.loads(Path("pyproject.toml").read_text(encoding="utf-8"))["project"]
    return {
        "name": project["name"],
        "version": project["version"],
        "description": project.get("description", ""),
        "long_description": Path(project.get("readme", "README.md")).read_text(encoding="utf-8"),
        "long_description_content_type": "text/markdown",
        "python_requires": project.get("requires-python", ">=3.11"),
        "install_requires": project.get("dependencies", []),
        "extras_require": project.get("optional-dependencies", {}),
        "packages": find_packages(include=["speclut", "speclut.*"]),
        "package_data": {"speclut.configs": ["*.yaml"]},
        "entry_points": {
            "console_scripts": [f"{name}={target}" for name, target in project.get("scripts", {}).items()]
        },
    }


setup(**_load_metadata())
