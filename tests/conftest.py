from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from src.adapters.dev_fonts_server import DevFontsServer, create_dev_fonts_app
from src.adapters.http_fonts_api import HttpFontsApi
from src.rules.loader import load_rules
from src.rules.models import Rules

ROOT = Path(__file__).resolve().parent.parent

DEV_TOKEN = "dev-session-token"
DEV_BASE_URL = "http://testserver/api/v1/admin"

_SIGNATURES = {
    "TTF": b"\x00\x01\x00\x00",
    "OTF": b"OTTO",
    "WOFF": b"wOFF",
    "WOFF2": b"wOF2",
}


@pytest.fixture
def rules() -> Rules:
    """The real rules file from the project root."""
    return load_rules(ROOT / "rules.yaml")


@pytest.fixture
def font_bytes() -> Callable[..., bytes]:
    """
    Build minimal font payloads that pass signature checks.

    font_bytes("TTC", faces=2) gives a collection header with two faces.
    """

    def build(kind: str = "TTF", faces: int = 1, size: int = 64) -> bytes:
        if kind == "TTC":
            header = b"ttcf" + b"\x00\x01\x00\x00" + faces.to_bytes(4, "big")
        else:
            header = _SIGNATURES[kind]
        return header + b"\x00" * max(0, size - len(header))

    return build


@pytest.fixture
def dev_server() -> DevFontsServer:
    return DevFontsServer(token=DEV_TOKEN)


@pytest.fixture
def dev_app(dev_server: DevFontsServer) -> FastAPI:
    return create_dev_fonts_app(dev_server)


@pytest.fixture
def make_api(dev_app: FastAPI) -> Callable[..., HttpFontsApi]:
    """
    HttpFontsApi wired to the dev app in-process.

    Call it inside the event loop that will use the client.
    """

    def build(token: str | None = DEV_TOKEN) -> HttpFontsApi:
        return HttpFontsApi(
            DEV_BASE_URL,
            token=token,
            transport=httpx.ASGITransport(app=dev_app),
        )

    return build
