"""
API routes.

Blocking service calls run on a worker thread so the event loop never
waits on SQLite or password hashing.
"""

import asyncio
from typing import List

from fastapi import APIRouter, Depends

from .deps import get_current_identity, get_services
from .domain import Identity
from .models import (
    ApiResponse,
    DeletedOut,
    LoginRequest,
    NoteCreate,
    NoteOut,
    NoteUpdate,
    RegisterRequest,
    SessionOut,
    UserOut,
)
from .services import Services

auth_router = APIRouter(prefix="/auth", tags=["auth"])
notes_router = APIRouter(prefix="/notes", tags=["notes"], dependencies=[Depends(get_current_identity)])


# -------------------------------
# Auth
# -------------------------------

@auth_router.post("/register", status_code=201, response_model=ApiResponse[SessionOut],
                  response_model_exclude_none=True)
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    result = await asyncio.to_thread(
        services.auth.register, body.name, str(body.email or ""), body.password
    )
    return ApiResponse(message="User registered successfully", data=SessionOut(**result))


@auth_router.post("/login", response_model=ApiResponse[SessionOut], response_model_exclude_none=True)
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    result = await asyncio.to_thread(services.auth.login, body.email, body.password)
    return ApiResponse(message="Login successful", data=SessionOut(**result))


@auth_router.get("/me", response_model=ApiResponse[UserOut], response_model_exclude_none=True)
async def me(identity: Identity = Depends(get_current_identity), services: Services = Depends(get_services)):
    user = await asyncio.to_thread(services.auth.me, identity.id)
    return ApiResponse(data=UserOut(**user.to_dict()))


# -------------------------------
# Notes
# -------------------------------

@notes_router.post("", status_code=201, response_model=ApiResponse[NoteOut], response_model_exclude_none=True)
async def create_note(body: NoteCreate, identity: Identity = Depends(get_current_identity),
                      services: Services = Depends(get_services)):
    note = await asyncio.to_thread(services.notes.create, identity.id, body.title, body.content, body.tags)
    return ApiResponse(message="Note created successfully", data=NoteOut(**note.to_dict()))


@notes_router.get("", response_model=ApiResponse[List[NoteOut]], response_model_exclude_none=True)
async def list_notes(search: str = "", tag: str = "", identity: Identity = Depends(get_current_identity),
                     services: Services = Depends(get_services)):
    notes = await asyncio.to_thread(services.notes.list, identity.id, search, tag)
    return ApiResponse(count=len(notes), data=[NoteOut(**n.to_dict()) for n in notes])


# Must stay above "/{note_id}" or "tags" would be captured as a note id.
@notes_router.get("/tags/all", response_model=ApiResponse[List[str]], response_model_exclude_none=True)
async def list_tags(identity: Identity = Depends(get_current_identity), services: Services = Depends(get_services)):
    tags = await asyncio.to_thread(services.notes.distinct_tags, identity.id)
    return ApiResponse(count=len(tags), data=tags)


@notes_router.get("/{note_id}", response_model=ApiResponse[NoteOut], response_model_exclude_none=True)
async def get_note(note_id: str, identity: Identity = Depends(get_current_identity),
                   services: Services = Depends(get_services)):
    note = await asyncio.to_thread(services.notes.get, note_id, identity.id)
    return ApiResponse(data=NoteOut(**note.to_dict()))


@notes_router.put("/{note_id}", response_model=ApiResponse[NoteOut], response_model_exclude_none=True)
async def update_note(note_id: str, body: NoteUpdate, identity: Identity = Depends(get_current_identity),
                      services: Services = Depends(get_services)):
    note = await asyncio.to_thread(
        services.notes.update, note_id, identity.id, body.title, body.content, body.tags
    )
    return ApiResponse(message="Note updated successfully", data=NoteOut(**note.to_dict()))


@notes_router.delete("/{note_id}", response_model=ApiResponse[DeletedOut], response_model_exclude_none=True)
async def delete_note(note_id: str, identity: Identity = Depends(get_current_identity),
                      services: Services = Depends(get_services)):
    result = await asyncio.to_thread(services.notes.delete, note_id, identity.id)
    return ApiResponse(message="Note deleted successfully", data=DeletedOut(**result))
