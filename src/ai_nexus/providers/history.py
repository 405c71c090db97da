"""Conversation history normalization for chat providers.

Providers only understand two speaking roles. Narrator messages become user
turns prefixed with ``[NARRATOR]:``, finished attachments are inlined as
base64, and adjacent turns with the same role are merged because some
providers reject them.
"""

from typing import Any

from ai_nexus.models import AttachmentStatus, Message, MessageRole

NARRATOR_PREFIX = "[NARRATOR]: "
DEFAULT_ATTACHMENT_MIME = "image/png"

_CHAT_ROLES = {MessageRole.USER, MessageRole.MODEL, MessageRole.NARRATOR}


def strip_data_uri(url: str) -> str | None:
    """Return the base64 payload of a data URI, or None if there is none."""
    if "," not in url:
        return None
    payload = url.split(",", 1)[1]
    return payload or None


def _message_parts(message: Message) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = []

    text = message.content
    if text.strip():
        if message.role == MessageRole.NARRATOR:
            text = f"{NARRATOR_PREFIX}{text}"
        parts.append({"text": text})

    attachment = message.attachment
    if attachment and attachment.url and attachment.status == AttachmentStatus.DONE:
        data = strip_data_uri(attachment.url)
        if data:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": attachment.mime_type or DEFAULT_ATTACHMENT_MIME,
                        "data": data,
                    }
                }
            )
    return parts


def normalize_gemini_history(history: list[Message]) -> list[dict[str, Any]]:
    """Build Gemini ``contents`` turns from chat history.

    Returns:
        Turns of ``{"role": "user" | "model", "parts": [...]}`` with no two
        adjacent turns sharing a role
    """
    merged: list[dict[str, Any]] = []
    for message in history:
        if message.role not in _CHAT_ROLES:
            continue
        role = "model" if message.role == MessageRole.MODEL else "user"
        parts = _message_parts(message)
        if not parts:
            continue
        if merged and merged[-1]["role"] == role:
            merged[-1]["parts"].extend(parts)
        else:
            merged.append({"role": role, "parts": parts})
    return merged


def build_openai_messages(
    system_instruction: str, history: list[Message]
) -> list[dict[str, str]]:
    """Build OpenAI chat ``messages`` from chat history.

    Uses the same normalization as Gemini, then flattens each turn's text
    parts into one string. Attachments are dropped; the endpoint is text-only.
    """
    messages = [{"role": "system", "content": system_instruction}]
    for turn in normalize_gemini_history(history):
        texts = [part["text"] for part in turn["parts"] if "text" in part]
        if not texts:
            continue
        role = "assistant" if turn["role"] == "model" else "user"
        messages.append({"role": role, "content": "\n\n".join(texts)})
    return messages
