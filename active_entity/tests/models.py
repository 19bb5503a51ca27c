from typing import List, Optional

import attr
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from active_entity import Repository, declarative_active_base


Base = declarative_active_base()


class AuthorRepository(Repository["Author", int]):
    def find_by_domain(self, domain: str) -> List["Author"]:
        statement = self.query().where(Author._email.like(f"%@{domain}")).order_by(Author.id)
        return list(self.session.execute(statement).scalars())


class Address(Base):
    id = Column(Integer, primary_key=True)
    _city = Column("city", String(100))
    _street = Column("street", String(100))


class Author(Base):
    __repository__ = AuthorRepository
    __validators__ = {"email": [attr.validators.optional(attr.validators.matches_re(r"[^@]+@[^@]+\.\w+"))]}

    id = Column(Integer, primary_key=True)
    _name = Column("name", String(20), nullable=False)
    _email = Column("email", String(255))
    nickname = Column(String(50))
    address_id = Column(Integer, ForeignKey("addresses.id"))

    _address = relationship("Address")
    _books = relationship("Book", back_populates="_author")

    def get_initials(self) -> str:
        return "".join(part[0] for part in (self._name or "").split())

    def set_name(self, name: str) -> None:
        self._name = name.strip()


class Book(Base):
    id = Column(Integer, primary_key=True)
    _title = Column("title", String(200), nullable=False)
    author_id = Column(Integer, ForeignKey("authors.id"))

    _author = relationship("Author", back_populates="_books")


class Member(Base):
    id = Column(Integer, primary_key=True)
    _email = Column("email", String(255))
    nickname = Column(String(50))

    def get_email(self) -> Optional[str]:
        return self._email.lower() if self._email else None

    def get_nickname(self) -> str:
        return f"@{self.nickname}"

    def set_nickname(self, nickname: str) -> None:
        self.nickname = nickname.strip()
