from __future__ import annotations

from typing import Annotated

from app.core.database import get_db
from app.core.firebase import verify_id_token
from app.schema.sql import User
from app.services.users import get_user_by_firebase_uid
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

security_scheme = HTTPBearer()


async def get_current_user(token: Annotated[HTTPAuthorizationCredentials, Depends(security_scheme)], db: AsyncSession = Depends(get_db)) -> User:  # noqa: B008
  """Verify the Firebase ID token and load the matching user row."""
  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})

  firebase_uid = decoded_claims.get("uid")
  if not firebase_uid:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token claims")

  user = await get_user_by_firebase_uid(db, firebase_uid)
  if not user:
    # Users sign up through the account service first.
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

  return user
