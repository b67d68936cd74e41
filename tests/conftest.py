"""Fixtures building npm project trees on disk."""

import json
import logging
import os

import pytest


def write_manifest(project_dir, dependencies=None, dev=None, optional=None):
    """Write a package.json with the given dependency sections."""
    data = {"name": "fixture-app", "version": "1.0.0"}
    if dependencies is not None:
        data["dependencies"] = dependencies
    if dev is not None:
        data["devDependencies"] = dev
    if optional is not None:
        data["optionalDependencies"] = optional
    os.makedirs(project_dir, exist_ok=True)
    with open(os.path.join(project_dir, "package.json"), "w", encoding="utf-8") as fh:
        json.dump(data, fh)


def install_package(root_dir, name, version, body="module.exports = 1;\n"):
    """Create node_modules/<name> under ``root_dir`` with package.json and index.js."""
    pkg_dir = os.path.join(root_dir, "node_modules", *name.split("/"))
    os.makedirs(pkg_dir, exist_ok=True)
    meta = {"name": name}
    if version is not None:
        meta["version"] = version
    with open(os.path.join(pkg_dir, "package.json"), "w", encoding="utf-8") as fh:
        json.dump(meta, fh)
    with open(os.path.join(pkg_dir, "index.js"), "w", encoding="utf-8") as fh:
        fh.write(body)
    return pkg_dir


@pytest.fixture
def project(tmp_path):
    """An empty project directory nested two levels below tmp_path."""
    path = tmp_path / "workspace" / "app"
    path.mkdir(parents=True)
    return str(path)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """CLI tests reconfigure the root logger; put it back afterwards."""
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
