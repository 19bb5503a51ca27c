import atexit

import attr
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from active_entity import ConstraintValidator, EntityManager, ValidationError, declarative_active_base


Base = declarative_active_base(validate_on_flush=True)


class Plan(Base):
    id = Column(Integer, primary_key=True)
    _discount = Column("discount", Integer, nullable=False)


class Subscriber(Base):
    __validators__ = {"email": [attr.validators.matches_re(r"[^@]+@[^@]+")]}

    id = Column(Integer, primary_key=True)
    _name = Column("name", String(50), nullable=False)
    _email = Column("email", String(255), nullable=False)
    plan_id = Column(Integer, ForeignKey("plans.id"))

    _plan = relationship("Plan")

    def get_display_name(self) -> str:
        return f"{self._name} <{self._email}>"


manager = EntityManager.from_url("sqlite://", echo=True)
Base.metadata.create_all(manager.session.get_bind())
Base.set_entity_manager(manager)
Base.set_validator(ConstraintValidator())

subscriber = Subscriber.create({"name": "Seba", "email": "seba@example.com", "plan": Plan(discount=10)})
subscriber.save()
manager.commit()

got_subscriber = Subscriber.find_one_by_email("seba@example.com")
assert got_subscriber is subscriber, f"\n{got_subscriber}\n{subscriber}"
assert got_subscriber.to_array()["plan"] == {"id": 1, "discount": 10}

Subscriber.from_array({"plan": {"discount": 20}}, subscriber)
subscriber.save()
manager.commit()
assert Plan.find(1).discount == 20

invalid = Subscriber(name="Nobody", email="nowhere")
assert not invalid.is_valid()
invalid.save()
try:
    manager.flush()
except ValidationError as e:
    print(e)
    manager.session.rollback()

print(subscriber.display_name, Subscriber.count())


@atexit.register
def finalize():
    manager.session.close()
    Base.metadata.drop_all(manager.session.get_bind())
