# backend/utils/states_db.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from database import get_db
from models import State


class StatesClient:
    """Data access for the ``states`` table, bound to one request session."""

    def __init__(self, db: Session):
        self.db = db

    def _filtered(self, stmt, search: Optional[str]):
        if search:
            stmt = stmt.where(State.state_name.contains(search, autoescape=True))
        return stmt

    def find_many(
        self,
        search: Optional[str] = None,
        skip: int = 0,
        take: int = 10,
        order_by: str = "state_name",
        descending: bool = False,
    ) -> List[State]:
        column = getattr(State, order_by)
        ordering = column.desc() if descending else column.asc()
        stmt = self._filtered(select(State), search)
        stmt = stmt.order_by(ordering, State.id.asc()).offset(skip).limit(take)
        return list(self.db.scalars(stmt).all())

    def count(self, search: Optional[str] = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(State), search)
        return self.db.scalar(stmt) or 0

    def find_unique(self, state_id: int) -> Optional[State]:
        return self.db.get(State, state_id)

    def create(self, state_name: str) -> State:
        now = datetime.now()
        state = State(state_name=state_name, created_at=now, updated_at=now)
        self.db.add(state)
        self.db.commit()
        self.db.refresh(state)
        return state

    def update(self, state_id: int, changes: Dict[str, Any]) -> State:
        # get_one raises NoResultFound if the row vanished since the caller checked
        state = self.db.get_one(State, state_id)
        for key, value in changes.items():
            setattr(state, key, value)
        state.updated_at = datetime.now()
        self.db.commit()
        self.db.refresh(state)
        return state

    def delete(self, state_id: int) -> None:
        state = self.db.get_one(State, state_id)
        self.db.delete(state)
        self.db.commit()


def get_states_client(db: Session = Depends(get_db)) -> StatesClient:
    return StatesClient(db)
