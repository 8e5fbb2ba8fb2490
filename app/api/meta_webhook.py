"""Meta (Messenger / Instagram / page feed) webhook.

Registered WITHOUT auth middleware: the GET handshake checks the verify
token, and POST bodies are checked against X-Hub-Signature-256 when
META_APP_SECRET is configured. Replies go out through the Graph API, never
in the HTTP response.
"""

import hashlib
import hmac
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from app.chains.sales_agent import ResearchProfileMissingError
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_sales import CustomerMessageEvent
from app.db.social_accounts import get_social_account_by_page
from app.services import meta_messenger
from app.services.channel_turns import process_comment, process_customer_message

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks")

NOT_TRAINED_TEXT = "Сайн байна уу! Манай хуудастай холбогдсонд баярлалаа. Удахгүй тантай холбогдох болно. 🙏"
TURN_FAILED_TEXT = "Уучлаарай, одоогоор хариулах боломжгүй байна. Удахгүй тантай эргэн холбогдоно. 🙏"

PLATFORM_BY_OBJECT = {"page": "facebook", "instagram": "instagram"}


def verify_signature(body: bytes, signature_header: str, app_secret: str) -> bool:
    """Check ``sha256=<hex>`` against the HMAC of the raw body."""
    expected = "sha256=" + hmac.new(app_secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature_header or "", expected)


@router.get("/meta")
async def verify_webhook(
    mode: str | None = Query(None, alias="hub.mode"),
    token: str | None = Query(None, alias="hub.verify_token"),
    challenge: str | None = Query(None, alias="hub.challenge"),
):
    """Subscription handshake: echo the challenge when the verify token matches."""
    settings = get_settings()
    if mode == "subscribe" and settings.META_WEBHOOK_VERIFY_TOKEN and token == settings.META_WEBHOOK_VERIFY_TOKEN:
        logger.info("Meta webhook verified")
        return PlainTextResponse(challenge or "", status_code=200)

    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/meta")
async def receive_webhook(request: Request) -> dict[str, Any]:
    """
    Receive a batch of Meta events.

    Each messaging event and feed comment is processed independently; one
    failing event does not stop the rest of the batch.
    """
    settings = get_settings()
    body_bytes = await request.body()

    if settings.META_APP_SECRET:
        signature = request.headers.get("x-hub-signature-256", "")
        if not verify_signature(body_bytes, signature, settings.META_APP_SECRET):
            raise HTTPException(status_code=401, detail="Invalid webhook signature")

    body = await request.json()
    platform = PLATFORM_BY_OBJECT.get(body.get("object", ""))
    if platform is None:
        return {"success": True, "ignored": True}

    for entry in body.get("entry") or []:
        for event in entry.get("messaging") or []:
            await handle_messaging_event(event, platform)

        for change in entry.get("changes") or []:
            if change.get("field") == "feed":
                await handle_feed_event(change.get("value") or {}, str(entry.get("id", "")))

    return {"success": True}


async def _deliver(access_token: str, recipient_id: str, text: str, image_urls: list[str]) -> None:
    await meta_messenger.send_text(access_token, recipient_id, text)
    for url in image_urls[: get_settings().MAX_IMAGE_SENDS_PER_TURN]:
        await meta_messenger.send_image(access_token, recipient_id, url)


async def handle_messaging_event(event: dict[str, Any], platform: str) -> None:
    """Run a Messenger/Instagram DM through the sales agent and deliver the reply."""
    sender_id = (event.get("sender") or {}).get("id")
    page_id = (event.get("recipient") or {}).get("id")
    message = event.get("message") or {}
    text = message.get("text")

    if not sender_id or not text or message.get("is_echo"):
        return

    try:
        account = get_social_account_by_page(page_id)
    except Exception:
        logger.exception(f"Social account lookup failed for page {page_id}")
        return
    if not account:
        logger.warning(f"No social account for page {page_id}")
        return

    project_id = str(account["project_id"])
    access_token = account["access_token"]

    async def lookup_name() -> str | None:
        profile = await meta_messenger.fetch_profile(access_token, sender_id)
        return (profile or {}).get("name")

    inbound = CustomerMessageEvent(
        project_id=project_id,
        platform=platform,
        sender_key=sender_id,
        text=text,
    )

    try:
        outcome = await process_customer_message(
            inbound,
            knowledge_limit=get_settings().KNOWLEDGE_SALES_LIMIT,
            profile_lookup=lookup_name,
        )
    except ResearchProfileMissingError:
        logger.info("Project not trained, sending default reply", extra={"project_id": project_id})
        await _safe_send(access_token, sender_id, NOT_TRAINED_TEXT, project_id)
        return
    except Exception:
        logger.exception("Meta message turn failed", extra={"project_id": project_id})
        await _safe_send(access_token, sender_id, TURN_FAILED_TEXT, project_id)
        return

    if outcome.handed_off or not outcome.reply:
        return

    try:
        await _deliver(access_token, sender_id, outcome.reply, outcome.image_urls)
    except Exception:
        logger.exception(
            "Meta reply delivery failed",
            extra={"project_id": project_id, "conversation_id": outcome.conversation_id},
        )


async def _safe_send(access_token: str, recipient_id: str, text: str, project_id: str) -> None:
    try:
        await meta_messenger.send_text(access_token, recipient_id, text)
    except Exception:
        logger.exception("Meta text delivery failed", extra={"project_id": project_id})


async def handle_feed_event(value: dict[str, Any], page_id: str) -> None:
    """Answer a new public comment on the page's feed."""
    if value.get("item") != "comment" or value.get("verb") != "add":
        return

    commenter = value.get("from") or {}
    commenter_id = commenter.get("id")
    comment_id = value.get("comment_id")
    text = value.get("message")

    # The page's own comments
    if commenter_id == page_id:
        return
    if not comment_id or not text or not commenter_id:
        return

    try:
        account = get_social_account_by_page(page_id, platform="facebook")
    except Exception:
        logger.exception(f"Social account lookup failed for page {page_id}")
        return
    if not account or not account.get("is_active", True):
        logger.info(f"Social account missing or inactive for page {page_id}")
        return

    project_id = str(account["project_id"])

    try:
        replies = await process_comment(project_id, commenter_id, commenter.get("name"), text)
        for reply in replies:
            await meta_messenger.reply_to_comment(account["access_token"], comment_id, reply)
    except ResearchProfileMissingError:
        logger.info("Project not trained, comment left unanswered", extra={"project_id": project_id})
    except Exception:
        logger.exception("Comment reply failed", extra={"project_id": project_id})
