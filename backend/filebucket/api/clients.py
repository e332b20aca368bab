"""Client management (admin bearer). The plain secret is returned only at creation."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.api.schemas import ClientCreatedResponse, ClientCreateRequest, ClientOut
from filebucket.core.deps import require_admin
from filebucket.core.errors import ConflictError, NotFoundError
from filebucket.core.security import generate_client_credentials, hash_secret
from filebucket.db import Client, get_db
from filebucket.services.validation import validate_client_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"], dependencies=[Depends(require_admin)])


@router.post("", response_model=ClientCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_client(body: ClientCreateRequest, db: AsyncSession = Depends(get_db)):
    name = validate_client_name(body.name)
    existing = await db.execute(select(Client.id).where(Client.name == name))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("A client with this name already exists")
    client_id, client_secret = generate_client_credentials()
    client = Client(name=name, client_id=client_id, client_secret_hash=hash_secret(client_secret))
    db.add(client)
    await db.flush()
    logger.info("Created client %s (%s)", client.client_id, name)
    return ClientCreatedResponse(
        id=client.id,
        name=client.name,
        client_id=client.client_id,
        created_at=client.created_at,
        client_secret=client_secret,
    )


@router.get("", response_model=list[ClientOut])
async def list_clients(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Client).order_by(Client.id.asc()))
    return [ClientOut.model_validate(c) for c in result.scalars().all()]


@router.get("/{client_pk}", response_model=ClientOut)
async def get_client(client_pk: int, db: AsyncSession = Depends(get_db)):
    client = await db.get(Client, client_pk)
    if client is None:
        raise NotFoundError("Client not found")
    return ClientOut.model_validate(client)
