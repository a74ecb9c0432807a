import os
import re
from typing import Any, List, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from catalog.errors import NetworkError, ParseError
from catalog.logger import get_logger
from catalog.models import MenuItem

logger = get_logger(__name__)

MENU_URL = os.getenv(
    "MENU_URL",
    "https://raw.githubusercontent.com/Meta-Mobile-Developer-PC/"
    "Working-With-Data-API/main/capstone.json",
)
USER_AGENT = os.getenv("MENU_USER_AGENT", "little-lemon-menu-cache/1.0")
FETCH_TIMEOUT = float(os.getenv("MENU_FETCH_TIMEOUT", "30"))
FETCH_ATTEMPTS = int(os.getenv("MENU_FETCH_ATTEMPTS", "3"))

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})

_TRANSIENT = (requests.ConnectionError, requests.Timeout)


def _log_retry(retry_state) -> None:
    logger.warning(
        "Menu fetch attempt %d failed: %s; retrying.",
        retry_state.attempt_number,
        retry_state.outcome.exception(),
    )


def _get(session: requests.Session, url: str) -> requests.Response:
    # Only transport faults are retried; an HTTP error status is final.
    for attempt in Retrying(
        wait=wait_exponential_jitter(initial=1, max=10),
        stop=stop_after_attempt(max(1, FETCH_ATTEMPTS)),
        retry=retry_if_exception_type(_TRANSIENT),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            return session.get(url, timeout=FETCH_TIMEOUT)
    raise AssertionError("unreachable")  # pragma: no cover


_ID_RE = re.compile(r"-?[0-9]+")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _category(value: Any) -> str:
    # Upstream sends {"title": "Starters"}; older dumps use a plain string.
    if isinstance(value, dict):
        return _text(value.get("title"))
    return _text(value)


def explicit_id(value: Any) -> Optional[int]:
    """The element's own integer id, or None when missing or unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _ID_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def coerce_item(raw: dict, fallback_id: int) -> MenuItem:
    """
    Build a MenuItem from one raw menu element.
    `fallback_id` is used when the element carries no usable id.
    """
    item_id = explicit_id(raw.get("id"))
    return MenuItem(
        id=fallback_id if item_id is None else item_id,
        name=_text(raw.get("name")),
        price=_text(raw.get("price")),
        description=_text(raw.get("description")),
        image=_text(raw.get("image")),
        category=_category(raw.get("category")),
    )


def parse_menu(payload: Any) -> List[MenuItem]:
    if not isinstance(payload, dict):
        raise ParseError(
            f"Expected a JSON object envelope, got {type(payload).__name__}"
        )

    raw_menu = payload.get("menu")
    if not isinstance(raw_menu, list):
        if raw_menu is not None:
            logger.warning(
                "Menu field is %s, not a list; treating as empty.",
                type(raw_menu).__name__,
            )
        return []

    elements = []
    for position, raw in enumerate(raw_menu, start=1):
        if not isinstance(raw, dict):
            logger.warning("Skipping menu element %d: not an object (%r)", position, raw)
            continue
        elements.append(raw)

    # Elements without an id are numbered after the largest explicit one,
    # so they never overwrite another row on upsert.
    known = [i for i in (explicit_id(raw.get("id")) for raw in elements) if i is not None]
    next_id = max(known, default=0)

    items: List[MenuItem] = []
    for raw in elements:
        if explicit_id(raw.get("id")) is None:
            next_id += 1
        items.append(coerce_item(raw, next_id))
    return items


def load_menu(
    url: str = MENU_URL, session: Optional[requests.Session] = None
) -> List[MenuItem]:
    """
    Fetch the remote menu once and return its items in source order.
    Raises NetworkError or ParseError; an absent menu is an empty list.
    """
    session = session or SESSION
    logger.info("Fetching menu from %s", url)

    try:
        resp = _get(session, url)
    except requests.RequestException as e:
        logger.error("Menu fetch failed for %s: %s", url, e)
        raise NetworkError(url, message=str(e)) from e

    status = resp.status_code
    if not 200 <= status < 300:
        logger.error("Menu fetch returned HTTP %s for %s", status, url)
        raise NetworkError(url, status=status)

    try:
        payload = resp.json()
    except ValueError as e:
        logger.error("Menu response from %s is not valid JSON: %s", url, e)
        raise ParseError(f"Undecodable menu body from {url}: {e}") from e

    items = parse_menu(payload)
    logger.info("Loaded %d menu items from %s", len(items), url)
    return items
