from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .logger import get_logger
from .models import MenuItem

if TYPE_CHECKING:
    from .storage import MenuStore

logger = get_logger(__name__)

SqlFragment = Tuple[str, List[str]]


def normalize_term(term: Optional[str]) -> str:
    return (term or "").strip().casefold()


def normalize_categories(categories: Optional[Iterable[str]]) -> FrozenSet[str]:
    if not categories:
        return frozenset()
    return frozenset(c for c in categories if isinstance(c, str) and c)


@dataclass(frozen=True)
class NameContains:
    """Case-insensitive substring match on the item name. `term` is already case-folded."""
    term: str

    def to_sql(self) -> SqlFragment:
        # casefold() is registered on every store connection.
        return "instr(casefold(name), ?) > 0", [self.term]

    def matches(self, item: MenuItem) -> bool:
        return self.term in (item.name or "").casefold()


@dataclass(frozen=True)
class CategoryIn:
    categories: FrozenSet[str]

    def to_sql(self) -> SqlFragment:
        ordered = sorted(self.categories)
        placeholders = ", ".join("?" for _ in ordered)
        return f"category IN ({placeholders})", ordered

    def matches(self, item: MenuItem) -> bool:
        return item.category in self.categories


@dataclass(frozen=True)
class And:
    clauses: Tuple = field(default_factory=tuple)

    def to_sql(self) -> SqlFragment:
        parts: List[str] = []
        params: List[str] = []
        for clause in self.clauses:
            sql, clause_params = clause.to_sql()
            parts.append(f"({sql})")
            params.extend(clause_params)
        return " AND ".join(parts), params

    def matches(self, item: MenuItem) -> bool:
        return all(clause.matches(item) for clause in self.clauses)


def build_predicate(term: Optional[str], categories: Optional[Iterable[str]] = None):
    """
    Compose the optional name and category clauses.
    Returns None when neither clause applies (no WHERE at all).
    """
    clauses = []
    folded = normalize_term(term)
    if folded:
        clauses.append(NameContains(folded))
    cats = normalize_categories(categories)
    if cats:
        clauses.append(CategoryIn(cats))

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return And(tuple(clauses))


@dataclass
class FilterState:
    """Current search term and toggled categories for one menu screen."""
    term: str = ""
    active_categories: set = field(default_factory=set)

    def toggle(self, category: str) -> bool:
        """Flip membership of `category`; returns True if it is now active."""
        if category in self.active_categories:
            self.active_categories.discard(category)
            return False
        self.active_categories.add(category)
        return True

    def predicate(self):
        return build_predicate(self.term, self.active_categories)


class QueryEngine:
    def __init__(self, store: "MenuStore"):
        self.store = store

    def filter(
        self, term: Optional[str], categories: Optional[Iterable[str]] = None
    ) -> List[MenuItem]:
        predicate = build_predicate(term, categories)
        items = self.store.select(predicate)
        logger.debug(
            "Filter term=%r categories=%s -> %d items",
            normalize_term(term), sorted(normalize_categories(categories)), len(items),
        )
        return items

    def filter_state(self, state: FilterState) -> List[MenuItem]:
        return self.filter(state.term, state.active_categories)


def derive_categories(items: Sequence[MenuItem]) -> List[str]:
    """Sorted distinct non-empty categories of a loaded snapshot."""
    return sorted({it.category for it in items if it.category})
