import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from pydantic import BaseModel

from auth.admin import require_admin
from config import Settings, load_settings
from logging_config import setup_logging
from logic.errors import RegistrationError
from logic.ledger import Confirmed, Registrant
from logic.validation import REQUIRED_FIELDS_MESSAGE, validate_registration
from services.autosave import AutosaveTimer
from services.diagnostics import build_diagnostics
from services.email_delivery import EmailDeliveryError
from services.email_templates import format_test_email
from services.registration_service import RegistrationService, build_registration_service

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


class RegistrationRequest(BaseModel):
    nome: Optional[Any] = None
    email: Optional[Any] = None
    telefone: Optional[Any] = None
    cidade: Optional[Any] = None
    newsletter: Optional[Any] = None


class CancelRequest(BaseModel):
    email: Optional[Any] = None


class TestEmailRequest(BaseModel):
    to: Optional[Any] = None
    subject: Optional[Any] = None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def get_service(request: Request) -> RegistrationService:
    return request.app.state.registrations


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    logger.info("Starting registration API...")
    service = build_registration_service(settings)
    app.state.registrations = service
    app.state.started_at = time.time()

    autosave: Optional[AutosaveTimer] = None
    if settings.AUTOSAVE_ENABLED:
        autosave = AutosaveTimer(service.flush, settings.AUTOSAVE_INTERVAL_SECONDS)
        autosave.start()

    logger.info(f"Data directory: {settings.DATA_DIR} | capacity: {settings.MAX_VAGAS}")

    yield

    if autosave is not None:
        autosave.stop()
    service.flush()
    logger.info("Shutting down...")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(
        title="Event Registration API",
        description="Capacity-limited event sign-ups with waitlist, JSON persistence and e-mail notifications.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RegistrationError)
    async def _registration_error(request: Request, exc: RegistrationError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "code": exc.code},
        )

    # Malformed JSON or a body that is not an object
    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info(f"Rejected request body on {request.method} {request.url.path}: {exc.errors()}")
        message = REQUIRED_FIELDS_MESSAGE if request.url.path == "/api/inscricao" else "Requisição inválida"
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": message, "code": "VALIDATION_ERROR"},
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Erro interno do servidor", "code": "INTERNAL_ERROR"},
        )

    # --------------------------------------------------
    # Public
    # --------------------------------------------------

    @app.get("/", response_class=HTMLResponse)
    def root() -> str:
        return (
            "<html><head><title>Inscrições API</title></head>"
            "<body style=\"font-family: Arial; padding: 20px;\">"
            "<h1>✅ API de inscrições está online</h1>"
            "<p>Use <code>/api/status</code> para checar vagas e <a href=\"/admin\">/admin</a> para o dashboard.</p>"
            "</body></html>"
        )

    @app.get("/admin")
    def admin_dashboard() -> FileResponse:
        return FileResponse(STATIC_DIR / "admin.html", media_type="text/html")

    @app.get("/api/status")
    def api_status(service: RegistrationService = Depends(get_service)) -> Dict[str, Any]:
        status = service.status()
        return {
            "success": True,
            "data": {
                "vagasDisponiveis": status.seats_remaining,
                "totalInscricoes": status.total_confirmed,
                "listaEspera": status.total_waiting,
                "maxVagas": status.capacity,
            },
        }

    @app.post("/api/inscricao")
    def api_register(
        background_tasks: BackgroundTasks,
        body: Optional[RegistrationRequest] = None,
        service: RegistrationService = Depends(get_service),
    ) -> Dict[str, Any]:
        body = body or RegistrationRequest()
        fields = validate_registration(body.nome, body.email, body.telefone, body.cidade, body.newsletter)
        outcome = service.register(Registrant(**fields), schedule=background_tasks.add_task)

        if isinstance(outcome, Confirmed):
            return {
                "success": True,
                "tipo": outcome.kind,
                "data": {"numero": outcome.sequence, "vagasRestantes": outcome.seats_remaining},
            }
        return {"success": True, "tipo": outcome.kind, "data": {"posicao": outcome.position}}

    # --------------------------------------------------
    # Admin (Authorization: Bearer <ADMIN_TOKEN>)
    # --------------------------------------------------

    @app.get("/api/inscricoes", dependencies=[Depends(require_admin)])
    def api_list(service: RegistrationService = Depends(get_service)) -> Dict[str, Any]:
        confirmed, waiting = service.list_all()
        return {
            "success": True,
            "data": {
                "confirmadas": [r.to_dict() for r in confirmed],
                "listaEspera": [r.to_dict() for r in waiting],
            },
        }

    @app.post("/api/cancelar", dependencies=[Depends(require_admin)])
    def api_cancel(
        background_tasks: BackgroundTasks,
        body: Optional[CancelRequest] = None,
        service: RegistrationService = Depends(get_service),
    ) -> Dict[str, Any]:
        email = _text(body.email) if body is not None else ""
        service.cancel(email, schedule=background_tasks.add_task)
        return {"success": True, "message": "Inscrição cancelada com sucesso"}

    @app.get("/api/diagnostico", dependencies=[Depends(require_admin)])
    def api_diagnostics(
        request: Request,
        service: RegistrationService = Depends(get_service),
        settings: Settings = Depends(get_settings),
    ) -> Dict[str, Any]:
        return {"success": True, "diagnostico": build_diagnostics(service, settings, request.app.state.started_at)}

    @app.get("/api/email-config", dependencies=[Depends(require_admin)])
    def api_email_config(
        service: RegistrationService = Depends(get_service),
        settings: Settings = Depends(get_settings),
    ) -> Dict[str, Any]:
        return {
            "success": True,
            "email": {
                "provider": settings.EMAIL_PROVIDER,
                "senderEmail": settings.EMAIL_FROM,
                "senderName": settings.EMAIL_SENDER_NAME,
                "hasApiKey": bool(settings.BREVO_API_KEY),
                "enabled": service.notifier.enabled,
            },
        }

    @app.get("/api/test-email-provider", dependencies=[Depends(require_admin)])
    def api_test_email_provider(
        service: RegistrationService = Depends(get_service),
        settings: Settings = Depends(get_settings),
    ):
        sender = service.notifier.sender
        if sender is None:
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Envio de e-mail não configurado", "code": "EMAIL_DISABLED"},
            )

        return {
            "success": True,
            "provider": sender.provider,
            "sender": {"email": settings.EMAIL_FROM, "name": settings.EMAIL_SENDER_NAME},
        }

    @app.post("/api/test-email", dependencies=[Depends(require_admin)])
    def api_test_email(
        body: Optional[TestEmailRequest] = None,
        service: RegistrationService = Depends(get_service),
        settings: Settings = Depends(get_settings),
    ):
        body = body or TestEmailRequest()
        to = _text(body.to)
        if not to:
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Campo obrigatório: to", "code": "VALIDATION_ERROR"},
            )

        sender = service.notifier.sender
        if sender is None:
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Envio de e-mail não configurado", "code": "EMAIL_DISABLED"},
            )

        try:
            sender.send(to, to, _text(body.subject) or "Teste de E-mail", format_test_email(settings))
        except EmailDeliveryError as e:
            logger.error(f"Test e-mail to {to} failed: {e}")
            return JSONResponse(
                status_code=502,
                content={"success": False, "error": str(e), "code": "EMAIL_FAILED"},
            )

        return {"success": True, "provider": sender.provider}

    return app


_settings = load_settings()
setup_logging(_settings.LOG_LEVEL, _settings.LOG_FILE or None)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=_settings.PORT, reload=False)
