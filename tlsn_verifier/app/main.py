"""
FastAPI application for the TLSN verifier.

Features:
- TLSNotary presentation verification against a version pin, a server allow-list
  and the credit-score request/response shape.
- TDX quote from the local tappd agent, signed with the enclave-derived key.
- API key check on every route.
- Prometheus metrics endpoint.
- Structured logging and error handling.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .config import Settings
from .context import VerifierContext, build_context
from .errors import AttestationError
from .attestation import attestation_error_body
from .logging_setup import setup_logging
from .metrics import metrics_response
from .models import VerificationResponse
from .security import require_api_key

logger = logging.getLogger("tlsn_verifier")
setup_logging()

router = APIRouter()

def get_context(request: Request) -> VerifierContext:
    return request.app.state.context

def verification_status(response: VerificationResponse) -> int:
    if not response.attested:
        return 500
    if not response.verified:
        return 400
    return 200

@router.get("/health")
async def health(ctx: VerifierContext = Depends(get_context)):
    if await ctx.client.is_reachable():
        return PlainTextResponse("OK")
    return PlainTextResponse("Service not reachable", status_code=503)

@router.get("/")
async def root(ctx: VerifierContext = Depends(get_context)):
    try:
        info = await ctx.client.info()
    except AttestationError as e:
        logger.warning({"event": "info_unavailable", "reason": e.reason, "error": e.message})
        info = "Error fetching info"
    return PlainTextResponse(f"Welcome to the TLSN Verifier\n\nTappd Info: {info}")

@router.post("/verify-proof")
async def verify_proof(request: Request, ctx: VerifierContext = Depends(get_context)):
    """
    Verify a presentation and attach a signed TDX quote.
    200: verified and attested; 400: rejected but attested; 500: attestation failed.
    """
    body = await request.body()
    logger.info({"event": "verify_request", "bytes": len(body)})
    response = await ctx.binder.verify_and_attest(body)
    return JSONResponse(status_code=verification_status(response), content=response.to_wire())

@router.get("/attestation")
async def attestation(ctx: VerifierContext = Depends(get_context)):
    try:
        signed = await ctx.binder.attest()
    except AttestationError as e:
        return JSONResponse(status_code=500, content=attestation_error_body(e).to_wire())
    return JSONResponse(status_code=200, content=signed.to_wire())

@router.get("/metrics")
async def metrics():
    # Expose Prometheus metrics
    data, content_type = metrics_response()
    return Response(content=data, media_type=content_type)

async def generic_exc_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    # Do not expose internal errors
    return JSONResponse(status_code=500, content={"detail": "internal server error"})

def create_app(context: Optional[VerifierContext] = None) -> FastAPI:
    """
    Build the application. Without an explicit context one is built from the
    environment at startup; the signing identity is acquired before serving.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.context is None:
            app.state.context = build_context(Settings.from_env())
        await app.state.context.startup()
        yield

    # no docs or schema routes: every route sits behind the api key
    app = FastAPI(
        title="TLSN Verifier",
        lifespan=lifespan,
        dependencies=[Depends(require_api_key)],
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.context = context
    app.include_router(router)
    app.add_exception_handler(Exception, generic_exc_handler)
    return app

app = create_app()
