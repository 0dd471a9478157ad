from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, ValidationError

from auth.clerk_auth import get_current_user
from errors import InvalidStateId, StateNotFound, StateValidationError
from models import MAX_STATE_ID, State
from schemas import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    MessageOut,
    StateCreate,
    StateList,
    StateOut,
    StateUpdate,
    coerce_positive_int,
    max_page,
    resolve_sort,
    total_pages,
)
from utils.log import get_logger
from utils.states_db import StatesClient, get_states_client

router = APIRouter(
    prefix="/states",
    tags=["States"],
    dependencies=[Depends(get_current_user)],
)

logger = get_logger("states")


# ================================
# Helpers
# ================================
def parse_state_id(raw: str) -> int:
    raw = (raw or "").strip()
    if not (raw.isascii() and raw.isdigit()):
        raise InvalidStateId()
    digits = raw.lstrip("0")
    if not digits:
        raise InvalidStateId()
    # Well-formed but beyond the key range, so no row can match
    if len(digits) > len(str(MAX_STATE_ID)) or int(digits) > MAX_STATE_ID:
        raise StateNotFound()
    return int(digits)


def validate_payload(model: type[BaseModel], payload: Any):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise StateValidationError.from_pydantic(e)


def get_existing(states: StatesClient, state_id: int) -> State:
    state = states.find_unique(state_id)
    if not state:
        raise StateNotFound()
    return state


# ================================
# LIST STATES
# ================================
@router.get("", response_model=StateList)
def list_states(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    states: StatesClient = Depends(get_states_client),
):
    page_size = coerce_positive_int(limit, DEFAULT_LIMIT, MAX_LIMIT)
    page_no = coerce_positive_int(page, DEFAULT_PAGE, max_page(page_size))
    order_by, descending = resolve_sort(sort_by, sort_order)

    rows = states.find_many(
        search=search,
        skip=(page_no - 1) * page_size,
        take=page_size,
        order_by=order_by,
        descending=descending,
    )
    total = states.count(search=search)

    return StateList(
        states=[StateOut.model_validate(r) for r in rows],
        page=page_no,
        total_pages=total_pages(total, page_size),
        total_states=total,
    )


# ================================
# GET STATE
# ================================
@router.get("/{state_id}", response_model=StateOut)
def get_state(state_id: str, states: StatesClient = Depends(get_states_client)):
    state = get_existing(states, parse_state_id(state_id))
    return StateOut.model_validate(state)


# ================================
# CREATE STATE
# ================================
@router.post("", response_model=StateOut, status_code=status.HTTP_201_CREATED)
def create_state(
    payload: Any = Body(None),
    states: StatesClient = Depends(get_states_client),
):
    data = validate_payload(StateCreate, payload)
    state = states.create(data.state_name)
    logger.info("Created state %s (%s)", state.id, state.state_name)
    return StateOut.model_validate(state)


# ================================
# UPDATE STATE
# ================================
@router.put("/{state_id}", response_model=StateOut)
def update_state(
    state_id: str,
    payload: Any = Body(None),
    states: StatesClient = Depends(get_states_client),
):
    sid = parse_state_id(state_id)
    get_existing(states, sid)

    data = validate_payload(StateUpdate, payload)
    updated = states.update(sid, data.changes())
    logger.info("Updated state %s fields=%s", sid, sorted(data.changes()))
    return StateOut.model_validate(updated)


# ================================
# DELETE STATE
# ================================
@router.delete("/{state_id}", response_model=MessageOut)
def delete_state(state_id: str, states: StatesClient = Depends(get_states_client)):
    sid = parse_state_id(state_id)
    get_existing(states, sid)

    states.delete(sid)
    logger.info("Deleted state %s", sid)
    return {"message": "State deleted successfully"}
