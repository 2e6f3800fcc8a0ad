"""FastAPI endpoints over ArtScout"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from ..errors import InputValidationError, ProviderError, RegistryUnavailableError
from ..scout import ArtScout


class RegistryAddRequest(BaseModel):
    """Either one ``address`` or several ``addresses`` sharing the same details"""
    address: Optional[str] = None
    addresses: List[str] = Field(default_factory=list)
    name: Optional[str] = None
    added_by: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class WalletImportRequest(BaseModel):
    wallet_address: str
    name: Optional[str] = None
    fallback_contracts: List[str] = Field(default_factory=list)


def _split_addresses(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def create_app(scout: Optional[ArtScout] = None) -> FastAPI:
    """Build the app; a fresh ArtScout from the global config when none is given"""
    scout = scout or ArtScout()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await scout.start()
        logger.info("Art Scout API started")
        yield
        await scout.close()
        logger.info("Art Scout API stopped")

    app = FastAPI(title="Art Scout", version="1.0.0", lifespan=lifespan)
    app.state.scout = scout

    allowed_origins = scout.config.cors_origins
    if allowed_origins == ["*"]:
        logger.warning("CORS is set to allow all origins. Consider restricting in production.")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    @app.exception_handler(InputValidationError)
    async def validation_error(request: Request, exc: InputValidationError):
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.exception_handler(RegistryUnavailableError)
    async def registry_unavailable(request: Request, exc: RegistryUnavailableError):
        logger.error(f"Registry unavailable during {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"success": False, "error": "Contract registry unavailable"})

    @app.exception_handler(ProviderError)
    async def provider_error(request: Request, exc: ProviderError):
        logger.warning(f"Provider error during {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"success": False, "error": str(exc)})

    @app.get("/api/nfts")
    async def get_nfts(
        action: str = "curated",
        limit: Optional[int] = None,
        refresh: bool = False,
        contracts: Optional[str] = None,
        include_unpriced: bool = False,
    ):
        """For-sale art; ``contracts`` is a comma separated list of extra addresses"""
        response = await scout.discover(
            limit=limit,
            extra_contracts=_split_addresses(contracts),
            force_refresh=refresh,
            action=action,
            include_unpriced=include_unpriced,
        )
        return response.model_dump(mode="json")

    @app.get("/api/registry")
    async def list_registry():
        entries = await scout.registry_list()
        return {
            "contracts": [entry.model_dump(mode="json") for entry in entries],
            "total": len(entries),
        }

    @app.post("/api/registry")
    async def add_to_registry(body: RegistryAddRequest):
        if body.addresses:
            addresses = list(body.addresses)
            if body.address:
                addresses.insert(0, body.address)
            result = await scout.registry_add_many(
                addresses, name=body.name, added_by=body.added_by, metadata=body.metadata
            )
            return {"success": True, **result.model_dump()}

        if not body.address:
            raise InputValidationError("address or addresses is required")
        result = await scout.registry_add(
            body.address, name=body.name, added_by=body.added_by, metadata=body.metadata
        )
        return {"success": True, **result.model_dump()}

    @app.get("/api/registry/search")
    async def search_registry(q: str = Query("", description="Name or address fragment")):
        entries = await scout.registry_search(q)
        return {
            "contracts": [entry.model_dump(mode="json") for entry in entries],
            "total": len(entries),
        }

    @app.delete("/api/registry/{address}")
    async def remove_from_registry(address: str):
        if not await scout.registry_remove(address):
            raise HTTPException(status_code=404, detail="Contract not in registry")
        return {"success": True, "removed": True}

    @app.post("/api/process-wallet")
    async def process_wallet(body: WalletImportRequest):
        result = await scout.import_wallet(
            body.wallet_address,
            name=body.name,
            fallback_contracts=body.fallback_contracts,
        )
        return {"success": result.success, **result.model_dump()}

    @app.get("/api/validate-address")
    async def validate_address(address: str = ""):
        result = await scout.validate_address(address)
        return result.model_dump()

    @app.get("/api/platforms")
    async def platforms():
        return {"platforms": [platform.model_dump() for platform in scout.platforms()]}

    @app.get("/api/metadata")
    async def token_metadata(contract: str = "", token_id: str = ""):
        artwork = await scout.token_metadata(contract, token_id)
        if artwork is None:
            raise HTTPException(status_code=404, detail="Token not found")
        return artwork.model_dump(mode="json")

    @app.get("/api/stats")
    async def stats():
        return (await scout.stats()).model_dump()

    @app.get("/health")
    async def health():
        return await scout.health()

    return app
