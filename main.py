# main.py
"""
FastAPI app: JSON API over the settings / patient stores and the Google
Calendar authorization, plus the static front end.
"""
import logging
import secrets
import threading
import time
import webbrowser
from contextlib import asynccontextmanager

from dotenv import find_dotenv, load_dotenv

# .env must be loaded before config reads the environment
load_dotenv(find_dotenv(usecwd=True))

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, Response, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from calendar_oauth import CalendarAuthManager, get_auth_manager, is_invalid_grant
from config import AppConfig, config
from db.patient_store import InvalidPhoneError, PatientStore
from db.settings_store import SettingsStore
from schema import MarkInformedRequest, SavePhoneRequest, SettingsUpdate
from services.agenda import list_events
from state import AuthStatus, CredentialsError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
for uv_logger in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(uv_logger).setLevel(config.LOG_LEVEL)

logger = logging.getLogger("agenda")
http_logger = logging.getLogger("agenda.http")


router = APIRouter()

OAUTH_STATE_COOKIE = "oauth_state"


# -------------------------------
# Dependencies (stores live on app.state)
# -------------------------------
def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store


def get_patient_store(request: Request) -> PatientStore:
    return request.app.state.patient_store


def get_auth(request: Request) -> CalendarAuthManager:
    return request.app.state.auth


def _auth_required() -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": AuthStatus.AUTH_REQUIRED.value})


# -------------------------------
# OAuth – connect calendar
# -------------------------------
@router.get("/api/auth-url")
def auth_url(response: Response, auth: CalendarAuthManager = Depends(get_auth)):
    try:
        url, state = auth.build_authorization_request()
    except CredentialsError as e:
        logger.warning(f"Cannot build auth URL | {e.status.value}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    # Google's redirect back is a top-level GET, so "lax" still sends it
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        httponly=True,
        samesite="lax",
        max_age=600,
    )
    return {"url": url}


@router.get("/oauth2callback")
def oauth_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    auth: CalendarAuthManager = Depends(get_auth),
):
    if not code:
        detail = f" ({error})" if error else ""
        return PlainTextResponse(f"Código de autorização ausente{detail}.", status_code=400)

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or not expected_state or not secrets.compare_digest(state.encode(), expected_state.encode()):
        logger.warning("OAuth callback refused: state mismatch")
        return PlainTextResponse(
            "Sessão de login inválida ou expirada. Tente conectar novamente.",
            status_code=400,
        )

    try:
        auth.exchange_code(code)
    except Exception as e:
        logger.exception("OAuth code exchange failed")
        return PlainTextResponse(f"Erro ao autenticar com o Google: {e}", status_code=500)

    response = RedirectResponse(url="/", status_code=302)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response


@router.post("/api/delete-token")
def delete_token(auth: CalendarAuthManager = Depends(get_auth)):
    try:
        removed = auth.invalidate()
    except OSError as e:
        return JSONResponse(status_code=500, content={"success": False, "message": str(e)})

    message = "Token removido. Faça login novamente." if removed else "Nenhum token salvo."
    return {"success": True, "message": message}


# -------------------------------
# Patients
# -------------------------------
@router.get("/api/pacientes")
def list_patients(patients: PatientStore = Depends(get_patient_store)):
    try:
        return patients.get_all()
    except (OSError, ValueError) as e:
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.post("/api/salvar")
def save_phone(payload: SavePhoneRequest, patients: PatientStore = Depends(get_patient_store)):
    try:
        raw = payload.telefone
        patients.set_phone(payload.nome, str(raw) if raw is not None else None)
    except InvalidPhoneError:
        return JSONResponse(status_code=400, content={"success": False, "message": "Número inválido"})
    except (OSError, ValueError) as e:
        return JSONResponse(status_code=500, content={"success": False, "message": str(e)})

    return {"success": True}


@router.post("/api/marcar-informado")
def mark_informed(payload: MarkInformedRequest, patients: PatientStore = Depends(get_patient_store)):
    try:
        patients.set_informed(payload.nome, payload.informado)
    except (OSError, ValueError) as e:
        return JSONResponse(status_code=500, content={"success": False, "message": str(e)})

    return {"success": True}


# -------------------------------
# Agenda
# -------------------------------
@router.get("/api/agenda")
def agenda(
    auth: CalendarAuthManager = Depends(get_auth),
    settings: SettingsStore = Depends(get_settings_store),
    cfg: AppConfig = Depends(get_config),
):
    try:
        result = auth.load_authorized_client()

        if result.status == AuthStatus.AUTH_REQUIRED:
            # Stale or corrupt token must not be retried
            auth.invalidate()
            return _auth_required()

        if not result.ok:
            return JSONResponse(status_code=500, content={"error": result.message})

        credentials = result.credentials
        previous_token = credentials.token

        events = list_events(credentials, settings.dias_escopo(), cfg.TIMEZONE)
        auth.persist_if_refreshed(credentials, previous_token)
        return events

    except Exception as e:
        if is_invalid_grant(e):
            logger.warning("Google rejected the token (invalid_grant), removing it")
            auth.invalidate()
            return _auth_required()

        logger.exception("Failed to fetch agenda")
        return JSONResponse(status_code=500, content={"error": f"Erro ao buscar agenda: {e}"})


# -------------------------------
# Settings / upload
# -------------------------------
@router.get("/api/settings")
def read_settings(settings: SettingsStore = Depends(get_settings_store)):
    return settings.get()


@router.post("/api/settings")
def update_settings(payload: SettingsUpdate, settings: SettingsStore = Depends(get_settings_store)):
    try:
        settings.save(payload.model_dump(exclude_unset=True, exclude_none=True))
    except OSError as e:
        return JSONResponse(status_code=500, content={"success": False, "message": str(e)})

    return {"success": True}


@router.post("/api/upload")
async def upload(
    senha: str = Form(""),
    credenciais: UploadFile | None = File(None),
    banco: UploadFile | None = File(None),
    cfg: AppConfig = Depends(get_config),
    settings: SettingsStore = Depends(get_settings_store),
):
    if senha != settings.get().get("senhaAdmin"):
        logger.warning("Upload refused: wrong admin password")
        return JSONResponse(status_code=403, content={"success": False, "message": "Senha incorreta!"})

    # Canonical names: an upload always replaces the current file
    targets = [
        (credenciais, cfg.credentials_path),
        (banco, cfg.patients_path),
    ]

    try:
        for upload_file, path in targets:
            if upload_file is None:
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(await upload_file.read())
            logger.info(f"Uploaded {upload_file.filename!r} -> {path.name}")
    except OSError as e:
        return JSONResponse(status_code=500, content={"success": False, "message": str(e)})

    return {"success": True, "message": "Arquivo atualizado!"}


@router.get("/health")
def health():
    return {"ok": True}


# -------------------------------
# App factory
# -------------------------------
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        dur = round(time.time() - start, 4)
        http_logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {dur}s")
        return response
    except Exception as e:
        dur = round(time.time() - start, 4)
        http_logger.exception(f"{request.method} {request.url.path} EXC after {dur}s: {e}")
        raise


def create_app(cfg: AppConfig | None = None) -> FastAPI:
    if cfg is None:
        cfg = config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg.DATA_DIR.mkdir(parents=True, exist_ok=True)
        app.state.settings_store.get()
        logger.info(f"Data dir: {cfg.DATA_DIR} | flow={app.state.auth.flow_name}")
        yield

    app = FastAPI(title="Agenda de Pacientes", version="0.1.0", lifespan=lifespan)

    app.state.config = cfg
    app.state.settings_store = SettingsStore(cfg.settings_path)
    app.state.patient_store = PatientStore(cfg.patients_path, cfg.PHONE_REGION)
    app.state.auth = get_auth_manager(cfg)

    app.middleware("http")(log_requests)
    app.include_router(router)

    # Last: the catch-all mount must not shadow the API
    if cfg.STATIC_DIR.is_dir():
        app.mount("/", StaticFiles(directory=cfg.STATIC_DIR, html=True), name="static")
    else:
        logger.warning(f"Static dir {cfg.STATIC_DIR} not found, front end disabled")

    return app


app = create_app()


def run():
    url = f"http://localhost:{config.PORT}"

    if config.OPEN_BROWSER:
        def _open():
            time.sleep(1.5)
            if not webbrowser.open(url):
                logger.error(f"Could not open a browser, go to {url}")
        threading.Thread(target=_open, daemon=True).start()

    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
