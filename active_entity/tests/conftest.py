from typing import Generator
from unittest import mock

import pytest
from _pytest.config.argparsing import Parser
from _pytest.fixtures import SubRequest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from active_entity import ConstraintValidator, EntityContext, EntityManager
from active_entity.tests.models import Base


def pytest_addoption(parser: Parser) -> None:
    parser.addoption("--sqlalchemy-url", action="store", default="sqlite://")


@pytest.fixture()
def engine(request: SubRequest) -> Engine:
    connection_url = request.config.getoption("--sqlalchemy-url", default="sqlite://")
    return create_engine(connection_url)


@pytest.fixture()
def session(engine: Engine) -> Generator[Session, None, None]:
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    session = sessionmaker(engine)()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture()
def entity_manager(session: Session) -> EntityManager:
    return EntityManager(session)


@pytest.fixture()
def context(entity_manager: EntityManager) -> Generator[EntityContext, None, None]:
    context = EntityContext(entity_manager, ConstraintValidator())
    Base.bind_context(context)
    yield context
    Base.bind_context(EntityContext())


@pytest.fixture()
def mocked_manager() -> Generator[mock.Mock, None, None]:
    manager = mock.Mock(spec=EntityManager)
    Base.bind_context(EntityContext(manager))
    yield manager
    Base.bind_context(EntityContext())


@pytest.fixture()
def unconfigured() -> Generator[None, None, None]:
    Base.bind_context(EntityContext())
    yield
    Base.bind_context(EntityContext())
