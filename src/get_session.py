"""Telegram user session for the Saved Messages notifier.

Only notification_method=saved_messages needs a user session; the Bot API
sink does not. Run ``wazewatch login`` once to create the .session file; the
watcher then reuses it and refuses to start if it is not authorized.
"""

from __future__ import annotations

import logging
import os
from getpass import getpass

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "wazewatch"


def _read_credentials() -> tuple[int, str, str]:
    load_dotenv()
    api_id = (os.getenv("API_ID") or "").strip()
    api_hash = (os.getenv("API_HASH") or "").strip()
    session_name = os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME

    if not api_id or not api_hash:
        raise RuntimeError(
            "API_ID and API_HASH are required when notification_method=saved_messages"
        )
    if not api_id.isdigit():
        raise RuntimeError(f"API_ID must be numeric, got {api_id!r}")
    return int(api_id), api_hash, session_name


def build_client() -> TelegramClient:
    api_id, api_hash, session_name = _read_credentials()
    LOGGER.info("Using Telegram session %s", session_name)
    return TelegramClient(session_name, api_id, api_hash)


async def connect_saved_messages_client() -> TelegramClient:
    """Connect the session used by the Saved Messages sink; it must be authorized."""

    client = build_client()
    await client.connect()
    if not await client.is_user_authorized():
        await client.disconnect()
        raise RuntimeError("Telegram session is not authorized; run `wazewatch login` first")
    return client


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    await qr.wait(timeout=120)


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        choice = input("wazewatch > ").strip()
        if choice == "1":
            return "qr"
        if choice == "2":
            return "phone"
        if choice == "3":
            raise SystemExit(0)
        print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(client: TelegramClient) -> None:
    if await client.is_user_authorized():
        return

    try:
        if _pick_login_method() == "phone":
            await _authorize_with_phone(client)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())

    me = await client.get_me()
    LOGGER.info("Logged in as %s", getattr(me, "first_name", "unknown"))


async def login() -> None:
    """Interactive login that leaves an authorized .session file behind."""

    client = build_client()
    await client.connect()
    try:
        await authorize(client)
    finally:
        await client.disconnect()
