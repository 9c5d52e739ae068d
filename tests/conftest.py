# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for codemap tests.

Provides the four-type service scenario both as TypeDeclarations (for graph
and analysis tests) and as a Python project on disk (for parser, engine and
command-line tests).
"""

import logging
from pathlib import Path
from typing import List

import pytest

from codemap.models import TypeDeclaration, TypeKind
from declaration_helpers import make_type


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler and level changes made by setup_logging()."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    # pytest capture handlers are subclasses and stay in place
    for handler in list(root_logger.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)


@pytest.fixture
def scenario_declarations() -> List[TypeDeclaration]:
    """Service / ServiceImpl / Repository / Controller, in that order.

    - Service: interface with process(String)
    - ServiceImpl: implements Service, field of type Repository,
      process(String) calls repo.fetch and transform
    - Repository: fetch(String)
    - Controller: field of type Service, handle(String) calls service.process
    """
    return [
        make_type(
            "Service",
            kind=TypeKind.INTERFACE,
            file_path="/src/com/example/Service.java",
            line=3,
            members=[{"name": "process", "parameter_types": ["String"], "line": 4}],
        ),
        make_type(
            "ServiceImpl",
            interfaces=["Service"],
            fields=["Repository repo"],
            file_path="/src/com/example/ServiceImpl.java",
            line=3,
            members=[
                {
                    "name": "process",
                    "parameter_types": ["String"],
                    "calls": ["repo.fetch", "transform"],
                    "line": 6,
                },
                {"name": "transform", "parameter_types": ["String"], "line": 10},
            ],
        ),
        make_type(
            "Repository",
            file_path="/src/com/example/Repository.java",
            line=3,
            members=[{"name": "fetch", "parameter_types": ["String"], "line": 4}],
        ),
        make_type(
            "Controller",
            fields=["Service service"],
            file_path="/src/com/example/Controller.java",
            line=3,
            members=[
                {
                    "name": "handle",
                    "parameter_types": ["String"],
                    "calls": ["service.process"],
                    "line": 6,
                }
            ],
        ),
    ]


SERVICE_PY = '''\
from typing import Protocol


class Service(Protocol):
    def process(self, item: str) -> str:
        ...
'''

REPOSITORY_PY = '''\
class Repository:
    def fetch(self, key: str) -> str:
        return key
'''

SERVICE_IMPL_PY = '''\
from app.repository import Repository
from app.service import Service


class ServiceImpl(Service):
    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def process(self, item: str) -> str:
        data = self.repo.fetch(item)
        return self.transform(data)

    def transform(self, data: str) -> str:
        return data.upper()
'''

CONTROLLER_PY = '''\
from app.service import Service


class Controller:
    service: Service

    def __init__(self, service: Service) -> None:
        self.service = service

    def handle(self, request: str) -> str:
        return self.service.process(request)
'''


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """Create the service scenario as a Python package under tmp_path.

    Returns:
        Path to the project root directory (containing the ``app`` package).
    """
    project_root = tmp_path / "sample_project"
    app_dir = project_root / "app"
    app_dir.mkdir(parents=True)

    (app_dir / "__init__.py").write_text("")
    (app_dir / "service.py").write_text(SERVICE_PY)
    (app_dir / "repository.py").write_text(REPOSITORY_PY)
    (app_dir / "service_impl.py").write_text(SERVICE_IMPL_PY)
    (app_dir / "controller.py").write_text(CONTROLLER_PY)

    return project_root


@pytest.fixture
def cyclic_project(tmp_path: Path) -> Path:
    """Create three modules whose classes depend on each other in a ring."""
    project_root = tmp_path / "cyclic_project"
    pkg_dir = project_root / "ring"
    pkg_dir.mkdir(parents=True)

    (pkg_dir / "__init__.py").write_text("")
    (pkg_dir / "a.py").write_text(
        "from ring.b import B\n\n\nclass A:\n    peer: B\n"
    )
    (pkg_dir / "b.py").write_text(
        "from ring.c import C\n\n\nclass B:\n    peer: C\n"
    )
    (pkg_dir / "c.py").write_text(
        "from ring.a import A\n\n\nclass C:\n    peer: A\n"
    )
    return project_root
