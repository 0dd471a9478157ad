from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    UniqueConstraint,
)
from database import Base

STATE_NAME_MAX_LENGTH = 255
# Upper bound of the INT primary key
MAX_STATE_ID = 2**31 - 1


class State(Base):
    __tablename__ = "states"

    id = Column(Integer, primary_key=True, autoincrement=True)
    state_name = Column(String(STATE_NAME_MAX_LENGTH), nullable=False)
    # Set by StatesClient on create and on every update
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("state_name", name="uq_states_state_name"),
    )

    def __repr__(self):
        return f"<State id={self.id} state_name={self.state_name!r}>"
