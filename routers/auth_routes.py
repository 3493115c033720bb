import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from database import get_db
from models.user import User
from schemas.auth import SignInRequest, SignUpRequest, UserOut
from schemas.general import ok
from services.auth import (
    get_current_user,
    get_password_hash,
    is_valid_email,
    is_valid_password,
    token_for_user,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _auth_payload(user: User) -> dict:
    return {
        "token": token_for_user(user),
        "user": UserOut(id=user.id, email=user.email, name=user.name).model_dump(),
    }


@router.post("/signup")
def signup(payload: SignUpRequest, db: Session = Depends(get_db)):
    email = (payload.email or "").strip()
    name = (payload.name or "").strip()
    password = payload.password or ""

    if not email or not password or not name:
        raise HTTPException(status_code=400, detail="All fields are required")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    if not is_valid_password(password):
        raise HTTPException(
            status_code=400,
            detail="Password must be at least 8 characters with 1 uppercase, 1 lowercase, and 1 number",
        )
    if crud.get_user_by_email(db, email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = crud.create_user(db, email=email, name=name, hashed_password=get_password_hash(password))
    logger.info("user signed up user_id=%s", user.id)
    return ok(_auth_payload(user), status_code=201)


@router.post("/signin")
def signin(payload: SignInRequest, db: Session = Depends(get_db)):
    email = (payload.email or "").strip()
    password = payload.password or ""

    if not email or not password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    user = crud.get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return ok(_auth_payload(user))


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return ok(UserOut(id=current_user.id, email=current_user.email, name=current_user.name).model_dump())
