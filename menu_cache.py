import asyncio
import os
import sys
from typing import List

from catalog.logger import get_logger
from catalog.models import MenuItem
from catalog.interaction import InteractionCoordinator, SEARCH_DEBOUNCE_MS
from catalog.query import QueryEngine
from catalog.report import build_html_menu, build_plaintext_menu
from catalog.storage import MenuStore, DB_PATH
from catalog.sync import SyncController, SyncResult
from loaders import LOADERS

logger = get_logger(__name__)

MODE = os.getenv("MODE", "once").lower()  # once | search | report | interactive
MENU_SOURCE = os.getenv("MENU_SOURCE", "little_lemon").strip().lower()
SEARCH_TERM = os.getenv("SEARCH_TERM", "")
SEARCH_CATEGORIES = os.getenv("SEARCH_CATEGORIES", "")
REPORT_PATH = os.getenv("REPORT_PATH", "/data/menu.html")


def parse_categories(raw: str) -> List[str]:
    return [c.strip() for c in raw.split(",") if c.strip()]


def startup(store: MenuStore) -> SyncResult:
    loader = LOADERS.get(MENU_SOURCE)
    if not loader:
        logger.error("No loader registered for menu source '%s'.", MENU_SOURCE)
        raise SystemExit(1)

    controller = SyncController(store, loader)
    result = controller.run()
    if result.error is not None:
        logger.error("Menu unavailable for this run: %s", result.error)
    else:
        logger.info(
            "Menu ready: %d items (%s) at %s.",
            len(result.items),
            "fetched" if result.fetched else "from local store",
            result.synced_at,
        )
    return result


def run_once(store: MenuStore) -> int:
    result = startup(store)
    if not result.ok:
        return 1
    categories = sorted({it.category for it in result.items if it.category})
    logger.info("Categories: %s", ", ".join(categories) or "<none>")
    return 0


def run_search(store: MenuStore) -> int:
    result = startup(store)
    if not result.ok:
        return 1
    categories = parse_categories(SEARCH_CATEGORIES)
    items = QueryEngine(store).filter(SEARCH_TERM, categories)
    print(build_plaintext_menu(items, SEARCH_TERM.strip(), categories))
    return 0


def run_report(store: MenuStore) -> int:
    result = startup(store)
    if not result.ok:
        return 1
    categories = parse_categories(SEARCH_CATEGORIES)
    items = QueryEngine(store).filter(SEARCH_TERM, categories)
    html = build_html_menu(
        items,
        SEARCH_TERM.strip(),
        categories,
        all_categories=store.distinct_categories(),
    )
    os.makedirs(os.path.dirname(REPORT_PATH) or ".", exist_ok=True)
    with open(REPORT_PATH, "w", encoding="utf-8") as f:
        f.write(html)
    logger.info("Wrote menu report with %d items to %s", len(items), REPORT_PATH)
    return 0


async def _interactive(store: MenuStore, items: List[MenuItem]) -> None:
    def show(results: List[MenuItem]) -> None:
        print(build_plaintext_menu(results), flush=True)

    coordinator = InteractionCoordinator(
        QueryEngine(store), show, delay=SEARCH_DEBOUNCE_MS / 1000
    )
    print("Categories: " + ", ".join(coordinator.set_snapshot(items)), flush=True)
    print("Type to search, '#Category' to toggle a filter, Ctrl-D to quit.", flush=True)

    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            line = line.rstrip("\n")
            if line.startswith("#"):
                coordinator.toggle_category(line[1:].strip())
            else:
                coordinator.on_text_changed(line)
        await coordinator.debouncer.flush()
    finally:
        coordinator.close()


def run_interactive(store: MenuStore) -> int:
    result = startup(store)
    if not result.ok:
        return 1
    asyncio.run(_interactive(store, result.items))
    return 0


MODES = {
    "once": run_once,
    "search": run_search,
    "report": run_report,
    "interactive": run_interactive,
}


def main() -> int:
    runner = MODES.get(MODE)
    if runner is None:
        logger.error("Unknown MODE '%s'; expected one of %s.", MODE, ", ".join(MODES))
        return 2
    return runner(MenuStore(DB_PATH))


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except SystemExit:
        raise
    except Exception as e:
        logger.exception("Fatal menu cache error: %s", e)
        raise SystemExit(2)
