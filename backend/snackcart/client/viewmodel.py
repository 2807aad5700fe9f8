"""
SnackCart Client — Catalog View-Model
======================================

What:  The controller behind the admin grid. Owns the current CatalogState,
       runs the network calls, and applies their results through the pure
       transitions in `snackcart.client.state`.
How:   asyncio, one logical thread per session. Local state changes only after
       the server confirms a mutation; nothing is applied optimistically.

State machines:
    fetch    idle ──mount──▶ loading ──▶ populated | errored
    edit     none ──start_edit──▶ editing ──commit ok / cancel──▶ none
    upload   closed ──open_upload──▶ open ──submit ok / cancel──▶ closed
    delete   confirm() ──yes──▶ delete(id) ──ok──▶ item removed

Edit lock:
    At most one draft exists. While a commit or submit is in flight, neither
    a new edit nor the upload panel can be opened.

Stale responses:
    Each request remembers the session generation and the draft token that
    were current when it was issued. `unmount()` bumps the session; closing or
    replacing a draft retires its token. A completion whose generation or
    token is no longer current is dropped and logged at DEBUG.
"""

import inspect
import itertools
import logging
from typing import Awaitable, Callable, Optional, Union

from snackcart.client import state as st
from snackcart.client.api import SnackApiClient
from snackcart.client.previews import PreviewRegistry
from snackcart.client.state import (
    CatalogState,
    ChosenFile,
    EditDraft,
    Notice,
    NoticeLevel,
    UploadDraft,
)
from snackcart.config import settings
from snackcart.exceptions import NotFoundError, SnackCartError, ValidationError

logger = logging.getLogger(__name__)

INVALID_PRICE = "Enter a valid price."
INCOMPLETE_UPLOAD = "Please fill all fields & select a photo."
DELETE_PROMPT = "Delete this snack?"
GENERIC_FAILURE = "Something went wrong. Please try again."

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]


def _decline(message: str) -> bool:
    # Without a confirmation hook nothing destructive is sent
    return False


def notice_for(error: SnackCartError) -> Notice:
    """Actionable errors carry their own message; everything else gets a generic one."""
    if isinstance(error, (ValidationError, NotFoundError)):
        return Notice(NoticeLevel.VALIDATION, error.message)
    return Notice(NoticeLevel.ERROR, GENERIC_FAILURE)


class CatalogViewModel:
    """
    Args:
        api:            transport used for every remote call
        asset_base_url: base joined to server-relative image paths
        confirm:        asked before a delete; may be sync or async
        previews:       registry holding local previews of chosen photos
    """

    def __init__(
        self,
        api: SnackApiClient,
        *,
        asset_base_url: Optional[str] = None,
        confirm: Optional[Confirm] = None,
        previews: Optional[PreviewRegistry] = None,
    ):
        self.api = api
        self.asset_base_url = asset_base_url or settings.asset_base_url
        self.previews = previews if previews is not None else PreviewRegistry()
        self.state = CatalogState()
        self._confirm = confirm or _decline
        self._session = 0
        self._fetch_generation = 0
        self._confirmed_writes = 0
        self._tokens = itertools.count(1)
        self._mounted = False

    # ══════════════════════════════════════════════════════════════════════
    # Session / fetch lifecycle
    # ══════════════════════════════════════════════════════════════════════

    @property
    def mounted(self) -> bool:
        return self._mounted

    async def mount(self) -> None:
        """Starts a fresh session and loads the catalog."""
        self._session += 1
        self._mounted = True
        self._release_preview()
        self.state = CatalogState()
        await self.refresh()

    async def refresh(self) -> None:
        """Loads the catalog.

        Only the most recent call may land. A list issued before a confirmed
        edit, upload or delete is reissued so it cannot undo that change.
        """
        session = self._session
        self._fetch_generation += 1
        generation = self._fetch_generation
        self.state = st.start_loading(self.state)
        while True:
            confirmed = self._confirmed_writes
            try:
                snacks = await self.api.list_snacks()
            except SnackCartError as e:
                if not self._fetch_is_current(session, generation):
                    logger.debug("Dropping stale list failure (generation %d)", generation)
                    return
                logger.error("Error fetching snacks: %s", e.message)
                self.state = st.load_failed(self.state, notice_for(e))
                return

            if not self._fetch_is_current(session, generation):
                logger.debug("Dropping stale list result (generation %d)", generation)
                return
            if confirmed == self._confirmed_writes:
                break
            logger.debug("Catalog changed during list, fetching again")

        self.state = st.loaded(self.state, snacks)
        logger.debug("Catalog loaded: %d snacks", len(snacks))

    def unmount(self) -> None:
        """Ends the session. In-flight results arriving later are discarded."""
        self._session += 1
        self._mounted = False
        self._release_preview()
        self.state = st.close_draft(self.state)

    def _fetch_is_current(self, session: int, generation: int) -> bool:
        return session == self._session and generation == self._fetch_generation

    def _release_preview(self) -> None:
        draft = self.state.draft
        if isinstance(draft, UploadDraft):
            self.previews.release(draft.preview)

    # ══════════════════════════════════════════════════════════════════════
    # Derived views, filter and selection
    # ══════════════════════════════════════════════════════════════════════

    @property
    def filtered(self) -> st.Catalog:
        return st.filter_catalog(self.state.catalog, self.state.query)

    def set_query(self, query: str) -> None:
        self.state = st.set_query(self.state, query)

    def toggle(self, snack_id: str) -> None:
        self.state = st.toggle(self.state, snack_id)

    def is_selected(self, snack_id: str) -> bool:
        return self.state.selected.get(snack_id, False)

    def image_url(self, snack: st.Snack) -> str:
        return st.resolve_image_url(snack.img, self.asset_base_url)

    def clear_notice(self) -> None:
        self.state = st.with_notice(self.state, None)

    def save_all(self) -> str:
        """
        Serializes the local catalog for inspection.

        Deliberately performs no network write; the returned JSON is what a
        caller would display.
        """
        payload = st.serialize_catalog(self.state.catalog)
        logger.info("Catalog snapshot:\n%s", payload)
        return payload

    # ══════════════════════════════════════════════════════════════════════
    # Inline price edit
    # ══════════════════════════════════════════════════════════════════════

    def _draft_busy(self) -> bool:
        draft = self.state.draft
        return draft is not None and draft.in_flight

    def start_edit(self, category: str, snack_id: str) -> bool:
        """
        Opens the inline price editor for one snack.

        Refused (returns False) while a request is in flight, while the
        upload panel is open, or when the snack is not in the catalog.
        """
        if self._draft_busy() or isinstance(self.state.draft, UploadDraft):
            logger.debug("Edit of %s refused: another draft is active", snack_id)
            return False
        snack = st.find_snack(self.state.catalog, category, snack_id)
        if snack is None:
            return False
        self.state = st.begin_edit(self.state, category, snack, next(self._tokens))
        return True

    def set_draft_price(self, text: str) -> None:
        draft = self.state.draft
        if isinstance(draft, EditDraft) and not draft.in_flight:
            self.state = st.edit_price_text(self.state, text)

    def cancel_edit(self) -> None:
        """Discards the edit. No request is issued; an in-flight result is dropped."""
        if isinstance(self.state.draft, EditDraft):
            self.state = st.close_draft(self.state)

    async def commit_edit(self) -> bool:
        draft = self.state.draft
        if not isinstance(draft, EditDraft) or draft.in_flight:
            return False

        try:
            price = st.parse_price(draft.price_text)
        except ValueError:
            self.state = st.with_notice(self.state, Notice(NoticeLevel.VALIDATION, INVALID_PRICE))
            return False

        session, token = self._session, draft.token
        self.state = st.with_notice(st.set_in_flight(self.state, True), None)
        try:
            updated = await self.api.update_snack(draft.snack_id, {"price": price})
        except SnackCartError as e:
            if not self._is_current(session, token):
                logger.debug("Dropping stale price update failure for %s", draft.snack_id)
                return False
            logger.error("Error updating price of %s: %s", draft.snack_id, e.message)
            self.state = st.with_notice(st.set_in_flight(self.state, False), notice_for(e))
            return False

        if not self._is_current(session, token):
            logger.debug("Dropping stale price update for %s", draft.snack_id)
            return False
        self._confirmed_writes += 1
        self.state = st.price_confirmed(self.state, draft.category, draft.snack_id, updated.price)
        return True

    # ══════════════════════════════════════════════════════════════════════
    # Upload panel
    # ══════════════════════════════════════════════════════════════════════

    def open_upload(self) -> bool:
        """
        Opens the panel with a fresh draft.

        An idle inline edit is discarded; an in-flight request blocks opening.
        """
        if self._draft_busy():
            logger.debug("Upload panel refused: a request is in flight")
            return False
        current = self.state.draft
        if isinstance(current, UploadDraft):
            self.previews.release(current.preview)
        self.state = st.begin_upload(self.state, next(self._tokens))
        return True

    def update_upload(
        self,
        *,
        name: Optional[str] = None,
        price_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> None:
        draft = self.state.draft
        if not isinstance(draft, UploadDraft) or draft.in_flight:
            return
        changes = {
            key: value
            for key, value in (("name", name), ("price_text", price_text), ("category", category))
            if value is not None
        }
        self.state = st.edit_upload(self.state, **changes)

    def choose_file(self, file: ChosenFile) -> Optional[str]:
        """Replaces the chosen photo. The previous preview is released first."""
        draft = self.state.draft
        if not isinstance(draft, UploadDraft) or draft.in_flight:
            return None
        self.previews.release(draft.preview)
        preview = self.previews.create(file)
        self.state = st.edit_upload(self.state, file=file, preview=preview)
        return preview

    def cancel_upload(self) -> None:
        draft = self.state.draft
        if isinstance(draft, UploadDraft):
            self.previews.release(draft.preview)
            self.state = st.close_draft(self.state)

    async def submit_upload(self) -> bool:
        draft = self.state.draft
        if not isinstance(draft, UploadDraft) or draft.in_flight:
            return False

        if not draft.name.strip() or not draft.price_text.strip() or draft.file is None:
            self.state = st.with_notice(self.state, Notice(NoticeLevel.VALIDATION, INCOMPLETE_UPLOAD))
            return False
        try:
            price = st.parse_price(draft.price_text)
        except ValueError:
            self.state = st.with_notice(self.state, Notice(NoticeLevel.VALIDATION, INVALID_PRICE))
            return False

        session, token = self._session, draft.token
        self.state = st.with_notice(st.set_in_flight(self.state, True), None)
        try:
            snack = await self.api.create_snack(
                name=draft.name.strip(),
                price=price,
                category=draft.category,
                file=draft.file,
            )
        except SnackCartError as e:
            if not self._is_current(session, token):
                logger.debug("Dropping stale upload failure")
                return False
            logger.error("Error uploading snack: %s", e.message)
            self.state = st.with_notice(st.set_in_flight(self.state, False), notice_for(e))
            return False

        if not self._is_current(session, token):
            logger.debug("Dropping stale upload result %s", snack.id)
            return False
        self.previews.release(draft.preview)
        self._confirmed_writes += 1
        self.state = st.upload_confirmed(self.state, snack)
        return True

    # ══════════════════════════════════════════════════════════════════════
    # Delete
    # ══════════════════════════════════════════════════════════════════════

    async def delete_snack(self, category: str, snack_id: str) -> bool:
        if st.find_snack(self.state.catalog, category, snack_id) is None:
            return False
        if not await self._ask(DELETE_PROMPT):
            return False

        session = self._session
        try:
            await self.api.delete_snack(snack_id)
        except SnackCartError as e:
            if session != self._session:
                logger.debug("Dropping stale delete failure for %s", snack_id)
                return False
            logger.error("Delete error for %s: %s", snack_id, e.message)
            self.state = st.with_notice(self.state, notice_for(e))
            return False

        if session != self._session:
            logger.debug("Dropping stale delete result for %s", snack_id)
            return False
        self._confirmed_writes += 1
        self.state = st.snack_removed(self.state, category, snack_id)
        return True

    # ── Helpers ───────────────────────────────────────────────────────────

    def _is_current(self, session: int, token: int) -> bool:
        draft = self.state.draft
        return session == self._session and draft is not None and draft.token == token

    async def _ask(self, message: str) -> bool:
        answer = self._confirm(message)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)
