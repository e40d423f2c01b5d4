import hmac
import logging
from dataclasses import asdict

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from mail_receiver.config import get_settings
from mail_receiver.receiver import NewTopic, ProcessingFailure, receive_email
from mail_receiver.services.alerts import AlertService
from mail_receiver.services.forum_client import ForumClient
from mail_receiver.services.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

forum_client = ForumClient(
    settings.forum_base_url,
    settings.forum_api_key,
    api_username=settings.forum_api_username,
    system_username=settings.system_username,
    timeout_seconds=settings.api_timeout_seconds,
    retry_max_attempts=settings.api_retry_max_attempts,
    retry_base_delay_seconds=settings.api_retry_base_delay_seconds,
    retry_max_delay_seconds=settings.api_retry_max_delay_seconds,
)
alert_service = AlertService(settings)

app = FastAPI(title="Forum Mail Receiver", version="0.1.0")


def verify_inbound_key(provided: str) -> bool:
    expected = settings.inbound_api_key
    if not expected:
        return True
    return hmac.compare_digest(expected.encode("utf-8"), (provided or "").encode("utf-8"))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.app_env}


@app.post("/inbound/email")
async def inbound_email(request: Request, x_inbound_key: str = Header(default="")) -> JSONResponse:
    if not verify_inbound_key(x_inbound_key):
        logger.warning("Rejected inbound email with bad key", extra={"event": "inbound_unauthorized"})
        raise HTTPException(status_code=401, detail="invalid inbound key")

    raw = await request.body()
    logger.info("Received inbound email", extra={"event": "inbound_received", "size": len(raw)})

    try:
        outcome = await run_in_threadpool(receive_email, raw, settings=settings, forum=forum_client)
    except Exception as exc:
        await run_in_threadpool(
            alert_service.notify,
            alert_type="inbound_processing_error",
            summary="Unhandled exception while processing inbound email",
            context={"size": len(raw)},
            error=exc,
        )
        raise HTTPException(status_code=500, detail="inbound email processing error") from exc

    if isinstance(outcome, ProcessingFailure):
        return JSONResponse(
            {"status": "rejected", "kind": outcome.kind, "message": outcome.message},
            status_code=422,
        )

    action = "topic_created" if isinstance(outcome, NewTopic) else "reply_created"
    return JSONResponse({"status": "ok", "action": action, "outcome": asdict(outcome)})
