"""
Voucher Signing Server - Event-driven FastAPI wrapper.

Exposes voucher issuance and verification over HTTP. Claim requests and
signature re-checks run through the event bus so deployments can attach
hooks (audit, analytics, rate accounting) without touching the handlers.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..chain.reader import AirdropContractReader
from ..config import ServiceConfig
from ..engine.events import (
    EventBus,
    Dependencies,
    BaseEvent,
    IssueVoucherEvent,
    VerifyVoucherEvent,
    VoucherIssuedEvent,
    VoucherVerifiedEvent,
    RequestRejectedEvent,
)
from ..engine.exceptions import BaseException as VoucherServiceError, InvalidInputKind
from ..engine.executors import EventChain
from ..schemas.https import (
    GenerateSignatureRequest,
    VerifySignatureRequest,
    SignerInfoResponse,
    StoredVoucherResponse,
    ClaimantVouchersResponse,
    HealthResponse,
    parse_uint_value,
)
from ..services.issuance import IssuanceService
from ..services.verification import VerificationService
from ..store.database import create_store_engine
from ..store.repository import VoucherStore
from ..vouchers.hashing import ensure_uint256, normalize_address
from ..vouchers.nonces import NonceAllocator, create_nonce_allocator
from ..vouchers.signatures import VoucherSigner
from .flows import setup_event_bus, status_code_for

logger = logging.getLogger(__name__)

HTTP_ERROR_KINDS = {
    404: "not_found",
    405: "method_not_allowed",
}


class VoucherSignerServer(FastAPI):
    """FastAPI server issuing signed airdrop claim vouchers."""

    def __init__(
        self,
        signer: VoucherSigner,
        store: VoucherStore,
        allocator: Optional[NonceAllocator] = None,
        min_validity_seconds: int = 0,
        max_attempts: int = 3,
        store_timeout_seconds: float = 5.0,
        contract_reader: Optional[AirdropContractReader] = None,
        cors_origins: Optional[List[str]] = None,
        **fastapi_kwargs
    ):
        """Initialize the voucher signing server.

        Args:
            signer: Loaded service signer (may be unavailable; see /health)
            store: Voucher ledger
            allocator: Nonce allocator (default: 64-bit random)
            min_validity_seconds: Minimum gap between now and expireAt (default: 0)
            max_attempts: Issuance attempts on duplicate nonce (default: 3)
            store_timeout_seconds: Bound on each store wait (default: 5.0)
            contract_reader: Optional on-chain reader for status lookups
            cors_origins: Origins allowed to call the API from a browser (default: any)
            **fastapi_kwargs: FastAPI arguments (title, version, etc.)
        """
        self.signer = signer
        self.store = store
        self.contract_reader = contract_reader
        self.issuance = IssuanceService(
            signer,
            store,
            allocator,
            min_validity_seconds=min_validity_seconds,
            max_attempts=max_attempts,
            store_timeout_seconds=store_timeout_seconds,
        )
        self.verification = VerificationService(signer)
        self.depends = Dependencies(
            issuance=self.issuance,
            verification=self.verification,
            store=store,
            contract_reader=contract_reader,
        )
        self.event_bus: EventBus = setup_event_bus()

        fastapi_kwargs.setdefault("title", "Airdrop Voucher Signer")
        super().__init__(**fastapi_kwargs)
        self.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins or ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

        self._setup_exception_handlers()
        self._setup_signature_endpoints()
        self._setup_lookup_endpoints()
        self._setup_health_endpoint()

    @classmethod
    def from_config(cls, config: ServiceConfig, **fastapi_kwargs) -> "VoucherSignerServer":
        """Build the signer, store, allocator and optional chain reader from config.

        Example:
            ```python
            config = load_config()
            app = VoucherSignerServer.from_config(config)
            uvicorn.run(app, host=config.host, port=config.port)
            ```
        """
        signer = VoucherSigner.load(config.private_key())
        store = VoucherStore.from_engine(create_store_engine(config.database_url))
        allocator = create_nonce_allocator(
            config.nonce_strategy,
            store,
            bits=config.nonce_bits,
            max_attempts=config.issuance_max_attempts,
        )
        reader = None
        if config.chain_enabled:
            reader = AirdropContractReader.from_rpc_url(config.rpc_url, config.airdrop_contract_address)

        logger.info(
            "Voucher signer server configured (nonce strategy=%s, min validity=%ds, chain reads=%s)",
            allocator.strategy, config.min_validity_seconds, "on" if reader else "off",
        )
        return cls(
            signer,
            store,
            allocator,
            min_validity_seconds=config.min_validity_seconds,
            max_attempts=config.issuance_max_attempts,
            store_timeout_seconds=config.store_timeout_seconds,
            contract_reader=reader,
            cors_origins=config.cors_origins,
            **fastapi_kwargs,
        )

    def subscribe(self, event_class: type[BaseEvent], handler: Callable) -> None:
        """Register event handler.

        Args:
            event_class: Event type to handle
            handler: Async function(event, deps) -> Optional[BaseEvent]

        Example:
            ```python
            async def notify(event: VoucherIssuedEvent, deps: Dependencies):
                await queue.publish(event.voucher.to_wire())
                return None

            app.subscribe(VoucherIssuedEvent, notify)
            ```
        """
        self.event_bus.subscribe(event_class, handler)

    def add_hook(self, event_class: type[BaseEvent], hook: Callable) -> None:
        """Register event hook for side effects.

        Args:
            event_class: Event type to hook into
            hook: Async function(event, deps) -> None
        """
        self.event_bus.hook(event_class, hook)

    def hook(self, event_class: type[BaseEvent]) -> Callable:
        """Decorator for registering event hooks.

        Example:
            @app.hook(IssueVoucherEvent)
            async def audit(event, deps):
                await audit_log.write(repr(event))
        """
        def decorator(hook_func: Callable) -> Callable:
            self.event_bus.hook(event_class, hook_func)
            return hook_func
        return decorator

    async def _run_chain(self, initial_event: BaseEvent, result_type: type) -> JSONResponse:
        event_chain = EventChain(self.event_bus, self.depends)
        event = await event_chain.first(initial_event, result_type, RequestRejectedEvent)

        if isinstance(event, RequestRejectedEvent):
            return JSONResponse(status_code=event.status_code, content=event.to_response())
        if isinstance(event, VoucherIssuedEvent):
            return JSONResponse(status_code=event.status_code, content=event.voucher.to_response())
        if isinstance(event, VoucherVerifiedEvent):
            return JSONResponse(status_code=event.status_code, content=event.result.to_response())

        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "request produced no result"}
        )

    def _setup_exception_handlers(self) -> None:
        async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
            errors = exc.errors()
            first = errors[0] if errors else {}
            loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
            body = {
                "error": InvalidInputKind.kind,
                "message": first.get("msg", "request body is invalid"),
            }
            if loc:
                body["field"] = loc[-1]
            return JSONResponse(status_code=400, content=body)

        async def on_service_error(request: Request, exc: VoucherServiceError) -> JSONResponse:
            return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())

        async def on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
            kind = HTTP_ERROR_KINDS.get(exc.status_code, "http_error")
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": kind, "message": str(exc.detail)},
                headers=getattr(exc, "headers", None),
            )

        async def on_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(
                status_code=500,
                content={"error": "internal_error", "message": "internal server error"},
            )

        self.add_exception_handler(RequestValidationError, on_validation_error)
        self.add_exception_handler(VoucherServiceError, on_service_error)
        self.add_exception_handler(StarletteHTTPException, on_http_error)
        self.add_exception_handler(Exception, on_unexpected_error)

    def _setup_signature_endpoints(self) -> None:
        @self.post("/signatures/generate", status_code=201)
        async def generate_signature(request: GenerateSignatureRequest):
            """Issue a signed voucher for a claim request."""
            return await self._run_chain(
                IssueVoucherEvent(
                    claimant=request.claimant,
                    token=request.token,
                    amount=request.amount,
                    expire_at=request.expire_at,
                ),
                VoucherIssuedEvent,
            )

        @self.post("/signatures/verify")
        async def verify_signature(request: VerifySignatureRequest):
            """Re-check a voucher signature against the service signer."""
            return await self._run_chain(
                VerifyVoucherEvent(
                    claimant=request.claimant,
                    token=request.token,
                    amount=request.amount,
                    nonce=request.nonce,
                    expire_at=request.expire_at,
                    signature=request.signature,
                ),
                VoucherVerifiedEvent,
            )

        @self.get("/signatures/signer")
        async def signer_info():
            """Service signer address, compared with the contract's when configured."""
            info = SignerInfoResponse(signer_address=self.signer.address)
            if self.contract_reader is not None:
                info.contract_address = self.contract_reader.contract_address
                info.contract_signer = await self.contract_reader.contract_signer_or_none()
                if info.contract_signer is not None:
                    info.signer_matches_contract = info.contract_signer.lower() == info.signer_address.lower()
            return JSONResponse(status_code=200, content=info.to_wire())

    def _setup_lookup_endpoints(self) -> None:
        @self.get("/signatures/claimants/{claimant}")
        async def claimant_vouchers(claimant: str, limit: int = Query(100, ge=1, le=1000)):
            """Vouchers issued to a claimant, newest first."""
            claimant = normalize_address(claimant, "claimant")
            vouchers = await asyncio.to_thread(self.store.list_for_claimant, claimant, limit)
            count = await asyncio.to_thread(self.store.count_for_claimant, claimant)
            body = ClaimantVouchersResponse(claimant=claimant, count=count, vouchers=vouchers)
            return JSONResponse(status_code=200, content=body.to_wire())

        @self.get("/signatures/claimants/{claimant}/{nonce}")
        async def stored_voucher(claimant: str, nonce: str):
            """One stored voucher, with its on-chain redemption status when available."""
            claimant = normalize_address(claimant, "claimant")
            try:
                nonce_value = ensure_uint256(parse_uint_value(nonce), "nonce")
            except ValueError:
                raise InvalidInputKind("nonce", "must be a decimal integer")

            voucher = await asyncio.to_thread(self.store.get, claimant, nonce_value)
            if voucher is None:
                return JSONResponse(
                    status_code=404,
                    content={"error": "voucher_not_found", "message": f"no voucher for {claimant} with nonce {nonce_value}"}
                )

            used = None
            if self.contract_reader is not None:
                used = await self.contract_reader.nonce_used_or_none(claimant, nonce_value)
            body = StoredVoucherResponse(voucher=voucher, nonce_used_on_chain=used)
            return JSONResponse(status_code=200, content=body.to_response())

    def _setup_health_endpoint(self) -> None:
        @self.get("/health")
        async def health():
            """Liveness plus signing-key readiness."""
            if not self.signer.available:
                body = HealthResponse(status="UNAVAILABLE", reason=self.signer.unavailable_reason)
                return JSONResponse(status_code=503, content=body.to_wire())
            return JSONResponse(status_code=200, content={"status": "OK"})
