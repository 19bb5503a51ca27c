import enum
import logging
import typing

import attr
import sqlalchemy
from sqlalchemy.orm import Mapper, Session, sessionmaker

from active_entity.repository import Repository


logger = logging.getLogger(__name__)


class EntityState(enum.Enum):
    TRANSIENT = "transient"
    PENDING = "pending"
    PERSISTENT = "persistent"
    DELETED = "deleted"
    DETACHED = "detached"


@attr.s(auto_attribs=True)
class EntityManager:
    """Persistence manager facade over a SQLAlchemy session.

    Every operation forwards to the session; flushing and transaction
    boundaries stay with the session's unit of work.
    """

    session: Session
    repositories: typing.Dict[typing.Type, Repository] = attr.Factory(dict)

    @classmethod
    def from_url(cls, url: str, **engine_options: typing.Any) -> "EntityManager":
        engine = sqlalchemy.create_engine(url, **engine_options)
        return cls(sessionmaker(bind=engine)())

    def persist(self, entity: typing.Any) -> None:
        logger.debug("Persisting %r", entity)
        self.session.add(entity)

    def detach(self, entity: typing.Any) -> None:
        logger.debug("Detaching %r", entity)
        self.session.expunge(entity)

    def remove(self, entity: typing.Any) -> None:
        logger.debug("Removing %r", entity)
        self.session.delete(entity)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def get_repository(self, entity_cls: typing.Type) -> Repository:
        if entity_cls not in self.repositories:
            repository_cls = getattr(entity_cls, "__repository__", Repository)
            logger.debug("Creating %s for %s", repository_cls.__name__, entity_cls.__name__)
            self.repositories[entity_cls] = repository_cls(self.session, entity_cls)
        return self.repositories[entity_cls]

    def get_class_metadata(self, entity_cls: typing.Type) -> Mapper:
        return sqlalchemy.inspect(entity_cls)

    def get_entity_state(self, entity: typing.Any) -> EntityState:
        state = sqlalchemy.inspect(entity)
        if entity in self.session.deleted or state.deleted:
            return EntityState.DELETED
        if state.persistent:
            return EntityState.PERSISTENT
        if state.pending:
            return EntityState.PENDING
        if state.detached:
            return EntityState.DETACHED
        return EntityState.TRANSIENT

    def get_entity_identifier(self, entity: typing.Any) -> typing.List[typing.Any]:
        mapper = self.get_class_metadata(type(entity))
        return list(mapper.primary_key_from_instance(entity))
