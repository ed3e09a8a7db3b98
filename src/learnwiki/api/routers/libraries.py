"""Library management endpoints."""

from fastapi import APIRouter, Depends, status

from learnwiki.api.deps import discard_engine, get_registry
from learnwiki.api.schemas import LibraryCreate, LibraryResponse, OperationResult
from learnwiki.constants import DEFAULT_LIBRARY
from learnwiki.db.tenants import LibraryInfo, TenantRegistry, validate_library_name
from learnwiki.errors import ConflictError, NotFoundError, StorageUnavailableError

router = APIRouter(prefix="/api/libraries", tags=["libraries"])


def _to_response(info: LibraryInfo) -> LibraryResponse:
    return LibraryResponse(
        name=info.name,
        size=info.size,
        created=info.created,
        modified=info.modified,
        is_default=info.name == DEFAULT_LIBRARY,
    )


@router.get("", response_model=list[LibraryResponse])
async def list_libraries(
    registry: TenantRegistry = Depends(get_registry),
) -> list[LibraryResponse]:
    """List all libraries with size and timestamps."""
    infos = (registry.info(name) for name in registry.list_names())
    return [_to_response(info) for info in infos if info is not None]


@router.post("", response_model=LibraryResponse, status_code=status.HTTP_201_CREATED)
async def create_library(
    request: LibraryCreate,
    registry: TenantRegistry = Depends(get_registry),
) -> LibraryResponse:
    """Create an empty library.

    Raises 400 for unsafe names and 409 if the library already exists.
    """
    name = validate_library_name(request.name)
    if not registry.create(name):
        raise ConflictError(f"Library already exists: {name}")
    info = registry.info(name)
    if info is None:
        raise StorageUnavailableError(f"Library was not created: {name}")
    return _to_response(info)


@router.delete("/{name}", response_model=OperationResult)
async def delete_library(
    name: str,
    registry: TenantRegistry = Depends(get_registry),
) -> OperationResult:
    """Delete a library and its file. The default library answers 403."""
    if not registry.delete(name):
        raise NotFoundError(f"Library not found: {name}")
    discard_engine(name)
    return OperationResult(removed=1)
