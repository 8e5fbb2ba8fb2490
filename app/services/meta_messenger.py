"""Outbound Meta Graph API calls (Messenger / Instagram / page comments)."""

from typing import Any

import httpx

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"


def _graph_url(path: str) -> str:
    return f"{GRAPH_API_BASE}/{get_settings().META_GRAPH_API_VERSION}/{path}"


async def _post(path: str, access_token: str, payload: dict[str, Any]) -> dict[str, Any]:
    async with httpx.AsyncClient(timeout=15) as client:
        response = await client.post(
            _graph_url(path),
            json={**payload, "access_token": access_token},
        )
        if response.is_error:
            logger.error(f"Graph API {path} failed: {response.status_code} {response.text[:300]}")
        response.raise_for_status()
        return response.json()


async def send_text(access_token: str, recipient_id: str, text: str) -> dict[str, Any]:
    """Send a text message to a Messenger/Instagram user."""
    return await _post(
        "me/messages",
        access_token,
        {"recipient": {"id": recipient_id}, "message": {"text": text}},
    )


async def send_image(access_token: str, recipient_id: str, image_url: str) -> dict[str, Any]:
    """Send one image attachment by URL."""
    return await _post(
        "me/messages",
        access_token,
        {
            "recipient": {"id": recipient_id},
            "message": {
                "attachment": {
                    "type": "image",
                    "payload": {"url": image_url, "is_reusable": True},
                }
            },
        },
    )


async def reply_to_comment(access_token: str, comment_id: str, text: str) -> dict[str, Any]:
    """Post a reply under a page comment."""
    return await _post(f"{comment_id}/comments", access_token, {"message": text})


async def fetch_profile(access_token: str, user_id: str) -> dict[str, Any] | None:
    """
    Fetch a sender's public profile (name, profile_pic).

    Returns None when the profile is unavailable; a missing name never
    blocks a turn.
    """
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(
                _graph_url(user_id),
                params={"fields": "name,profile_pic", "access_token": access_token},
            )
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as e:
        logger.warning(f"Could not fetch Meta profile for {user_id}: {e}")
        return None
