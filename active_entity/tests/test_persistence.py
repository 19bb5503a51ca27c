from unittest import mock

import pytest
from sqlalchemy.orm import Mapper, Session

from active_entity import ConfigurationError, EntityContext, EntityManager, EntityState
from active_entity.tests.models import Author, Base


@pytest.mark.parametrize(
    "shortcut, forwarded, untouched",
    [
        ("save", "persist", ["detach", "remove"]),
        ("detach", "detach", ["persist", "remove"]),
        ("destroy", "remove", ["persist", "detach"]),
    ],
)
def test_shortcut_forwards_exactly_once(mocked_manager: mock.Mock, shortcut: str, forwarded: str, untouched: list) -> None:
    author = Author(name="Jane")

    assert getattr(author, shortcut)() is None

    getattr(mocked_manager, forwarded).assert_called_once_with(author)
    for name in untouched:
        getattr(mocked_manager, name).assert_not_called()


def test_unit_of_work_introspection_is_forwarded(mocked_manager: mock.Mock) -> None:
    author = Author(name="Jane")
    mocked_manager.get_entity_state.return_value = EntityState.PENDING
    mocked_manager.get_entity_identifier.return_value = [7]

    assert author.get_entity_state() is EntityState.PENDING
    assert author.get_entity_identifier() == [7]
    mocked_manager.get_entity_state.assert_called_once_with(author)
    mocked_manager.get_entity_identifier.assert_called_once_with(author)


@pytest.mark.usefixtures("unconfigured")
@pytest.mark.parametrize("shortcut", ["save", "detach", "destroy", "get_entity_state", "get_entity_identifier"])
def test_shortcuts_require_entity_manager(shortcut: str) -> None:
    author = Author(name="Jane")

    with pytest.raises(ConfigurationError, match="Entity Manager is not set."):
        getattr(author, shortcut)()


@pytest.mark.usefixtures("unconfigured")
def test_class_shortcuts_require_entity_manager() -> None:
    with pytest.raises(ConfigurationError):
        Author.get_repository()

    with pytest.raises(ConfigurationError):
        Author.get_class_metadata()


@pytest.mark.usefixtures("unconfigured")
def test_set_session_configures_whole_hierarchy(session: Session) -> None:
    Author.set_session(session)

    assert isinstance(Base.get_entity_manager(), EntityManager)
    assert Author.get_entity_manager().session is session


def test_bound_context_is_shared_by_entity_types(context: EntityContext) -> None:
    assert Author.get_entity_manager() is context.entity_manager
    assert Author.get_validator() is context.validator


def test_class_metadata_is_the_mapper(context: EntityContext) -> None:
    metadata = Author.get_class_metadata()

    assert isinstance(metadata, Mapper)
    assert metadata.class_ is Author


def test_entity_state_follows_unit_of_work(context: EntityContext, session: Session) -> None:
    author = Author(name="Jane")
    assert author.get_entity_state() is EntityState.TRANSIENT

    author.save()
    assert author.get_entity_state() is EntityState.PENDING
    assert author in session

    session.flush()
    assert author.get_entity_state() is EntityState.PERSISTENT
    assert author.get_entity_identifier() == [author.id]

    author.destroy()
    assert author.get_entity_state() is EntityState.DELETED

    session.flush()
    assert author.get_entity_state() is EntityState.DELETED


def test_detached_entity_leaves_session(context: EntityContext, session: Session) -> None:
    author = Author(name="Jane")
    author.save()
    session.flush()

    author.detach()

    assert author not in session
    assert author.get_entity_state() is EntityState.DETACHED


def test_saved_entity_is_written_on_commit(context: EntityContext, session: Session) -> None:
    author = Author(name="Jane", email="jane@example.com")
    author.save()
    context.entity_manager.commit()
    author_id = author.id

    session.expunge_all()
    stored = Author.find(author_id)

    assert stored is not author
    assert stored.to_array() == {"id": author_id, "name": "Jane", "email": "jane@example.com"}


def test_manager_from_url_opens_session() -> None:
    manager = EntityManager.from_url("sqlite://")

    assert isinstance(manager.session, Session)
    manager.session.close()
