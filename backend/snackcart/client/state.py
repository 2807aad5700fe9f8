"""
SnackCart Client — Catalog State and Pure Transitions
======================================================

What:  The in-memory state behind the admin grid and every transition on it.
How:   One frozen `CatalogState` value; each event is a pure function
       `(state, ...) -> state`. Derived views (grouping, filtering) are
       recomputed, never patched in place. CatalogViewModel owns the current
       value and performs the network calls around these transitions.

State:
    catalog       category → tuple of Snack, always the three fixed categories
    query         free-text filter
    selected      snack id → bool, purely local
    draft         None | EditDraft | UploadDraft (at most one open at a time)
    fetch_status  idle → loading → populated | errored
    notice        last message for the user, if any
"""

import json
import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from snackcart.schemas.snack import CATEGORIES

Catalog = Mapping[str, Tuple["Snack", ...]]

DEFAULT_UPLOAD_CATEGORY = CATEGORIES[0]

# RFC 3986 scheme followed by ':' (http:, https:, data:, blob:)
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


class Snack(BaseModel):
    """A snack as the API returns it. Immutable; patches produce copies."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str
    price: float
    category: str
    img: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


@dataclass(frozen=True)
class ChosenFile:
    """A photo picked in the upload panel, held in memory until submit."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    POPULATED = "populated"
    ERRORED = "errored"


class NoticeLevel(str, Enum):
    # Actionable: the user can fix the input (client validation, 400, 404)
    VALIDATION = "validation"
    # Generic failure notice (store or transport errors)
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


@dataclass(frozen=True)
class EditDraft:
    """Inline price edit of one snack."""
    category: str
    snack_id: str
    price_text: str
    token: int
    in_flight: bool = False


@dataclass(frozen=True)
class UploadDraft:
    """The add-snack panel. `preview` is a reference issued by PreviewRegistry."""
    token: int
    category: str = DEFAULT_UPLOAD_CATEGORY
    name: str = ""
    price_text: str = ""
    file: Optional[ChosenFile] = None
    preview: Optional[str] = None
    in_flight: bool = False


Draft = Union[EditDraft, UploadDraft, None]


def empty_catalog() -> Dict[str, Tuple[Snack, ...]]:
    return {category: () for category in CATEGORIES}


@dataclass(frozen=True)
class CatalogState:
    catalog: Catalog = field(default_factory=empty_catalog)
    query: str = ""
    selected: Mapping[str, bool] = field(default_factory=dict)
    draft: Draft = None
    fetch_status: FetchStatus = FetchStatus.IDLE
    notice: Optional[Notice] = None


# ══════════════════════════════════════════════════════════════════════════
# Derived views and catalog patches
# ══════════════════════════════════════════════════════════════════════════

def group_by_category(snacks: Iterable[Snack]) -> Dict[str, Tuple[Snack, ...]]:
    """
    Partitions a fetched list into the fixed category buckets.

    Input order is kept inside each bucket. Snacks whose category is not one
    of CATEGORIES are dropped.
    """
    buckets: Dict[str, list] = {category: [] for category in CATEGORIES}
    for snack in snacks:
        if snack.category in buckets:
            buckets[snack.category].append(snack)
    return {category: tuple(items) for category, items in buckets.items()}


def filter_catalog(catalog: Catalog, query: str) -> Catalog:
    """
    Per category, the snacks whose name contains `query` (case-insensitive).

    A blank query returns `catalog` itself. Filtering a filtered view with the
    same query yields the same view.
    """
    needle = query.strip().lower()
    if not needle:
        return catalog
    return {
        category: tuple(snack for snack in items if needle in snack.name.lower())
        for category, items in catalog.items()
    }


def find_snack(catalog: Catalog, category: str, snack_id: str) -> Optional[Snack]:
    for snack in catalog.get(category, ()):
        if snack.id == snack_id:
            return snack
    return None


def replace_price(catalog: Catalog, category: str, snack_id: str, price: float) -> Catalog:
    if category not in catalog:
        return catalog
    patched = dict(catalog)
    patched[category] = tuple(
        snack.model_copy(update={"price": price}) if snack.id == snack_id else snack
        for snack in catalog[category]
    )
    return patched


def prepend_snack(catalog: Catalog, snack: Snack) -> Catalog:
    """Adds a newly created snack to the front of its bucket (newest first)."""
    if snack.category not in catalog:
        return catalog
    patched = dict(catalog)
    patched[snack.category] = (snack,) + tuple(catalog[snack.category])
    return patched


def remove_snack(catalog: Catalog, category: str, snack_id: str) -> Catalog:
    if category not in catalog:
        return catalog
    patched = dict(catalog)
    patched[category] = tuple(snack for snack in catalog[category] if snack.id != snack_id)
    return patched


def toggle_selected(selected: Mapping[str, bool], snack_id: str) -> Dict[str, bool]:
    toggled = dict(selected)
    toggled[snack_id] = not selected.get(snack_id, False)
    return toggled


def parse_price(text: str) -> float:
    """
    Parses a price typed by the user.

    Raises:
        ValueError: blank, non-numeric, non-finite or negative input. Zero is valid.
    """
    stripped = text.strip()
    if not stripped:
        raise ValueError("price is blank")
    value = float(stripped)
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"price {stripped!r} is not a non-negative number")
    return value


def format_price(price: float) -> str:
    """Renders a price for the edit box: 50.0 → '50', 12.5 → '12.5'."""
    return str(int(price)) if float(price).is_integer() else str(price)


def resolve_image_url(img: str, asset_base: str) -> str:
    """
    The one place that decides where a snack photo is loaded from.

    Values that start with a URI scheme (https://..., data:...) are used
    as-is; anything else is a server-relative path joined to `asset_base`.
    """
    if _SCHEME_RE.match(img):
        return img
    path = img if img.startswith("/") else f"/{img}"
    return f"{asset_base.rstrip('/')}{path}"


def serialize_catalog(catalog: Catalog) -> str:
    """JSON snapshot of the catalog, shown by the 'save all' action."""
    return json.dumps(
        {
            category: [snack.model_dump(mode="json", by_alias=True) for snack in items]
            for category, items in catalog.items()
        },
        indent=2,
    )


# ══════════════════════════════════════════════════════════════════════════
# Transitions
# ══════════════════════════════════════════════════════════════════════════

def start_loading(state: CatalogState) -> CatalogState:
    return replace(state, fetch_status=FetchStatus.LOADING)


def loaded(state: CatalogState, snacks: Iterable[Snack]) -> CatalogState:
    return replace(state, catalog=group_by_category(snacks), fetch_status=FetchStatus.POPULATED)


def load_failed(state: CatalogState, notice: Notice) -> CatalogState:
    # catalog keeps its previous value
    return replace(state, fetch_status=FetchStatus.ERRORED, notice=notice)


def set_query(state: CatalogState, query: str) -> CatalogState:
    return replace(state, query=query)


def toggle(state: CatalogState, snack_id: str) -> CatalogState:
    return replace(state, selected=toggle_selected(state.selected, snack_id))


def with_notice(state: CatalogState, notice: Optional[Notice]) -> CatalogState:
    return replace(state, notice=notice)


def begin_edit(state: CatalogState, category: str, snack: Snack, token: int) -> CatalogState:
    draft = EditDraft(
        category=category,
        snack_id=snack.id,
        price_text=format_price(snack.price),
        token=token,
    )
    return replace(state, draft=draft, notice=None)


def edit_price_text(state: CatalogState, text: str) -> CatalogState:
    if not isinstance(state.draft, EditDraft):
        return state
    return replace(state, draft=replace(state.draft, price_text=text))


def set_in_flight(state: CatalogState, in_flight: bool) -> CatalogState:
    if state.draft is None:
        return state
    return replace(state, draft=replace(state.draft, in_flight=in_flight))


def close_draft(state: CatalogState) -> CatalogState:
    return replace(state, draft=None)


def price_confirmed(state: CatalogState, category: str, snack_id: str, price: float) -> CatalogState:
    return replace(
        state,
        catalog=replace_price(state.catalog, category, snack_id, price),
        draft=None,
        notice=None,
    )


def begin_upload(state: CatalogState, token: int) -> CatalogState:
    return replace(state, draft=UploadDraft(token=token), notice=None)


def edit_upload(state: CatalogState, **changes) -> CatalogState:
    """Changes fields of the open upload draft (category, name, price_text, file, preview)."""
    if not isinstance(state.draft, UploadDraft):
        return state
    return replace(state, draft=replace(state.draft, **changes))


def upload_confirmed(state: CatalogState, snack: Snack) -> CatalogState:
    return replace(state, catalog=prepend_snack(state.catalog, snack), draft=None, notice=None)


def snack_removed(state: CatalogState, category: str, snack_id: str) -> CatalogState:
    selected = {key: value for key, value in state.selected.items() if key != snack_id}
    draft = state.draft
    if isinstance(draft, EditDraft) and draft.snack_id == snack_id:
        draft = None
    return replace(
        state,
        catalog=remove_snack(state.catalog, category, snack_id),
        selected=selected,
        draft=draft,
    )
