"""Shared test fixtures."""

import asyncio
import base64
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from io import BytesIO
from itertools import count

import pytest
from PIL import Image

from box_tracker.config import Settings
from box_tracker.containers import AppContainer, build_capture_registry
from box_tracker.domain.analysis import AnalyzedItem
from box_tracker.domain.auth import AuthSession
from box_tracker.domain.inventory import DEFAULT_COLOR_CODE, Box, Group, Item
from box_tracker.services.analysis import AnalysisClient, AnalysisService, RateLimiter
from box_tracker.services.auth import AuthProvider, AuthService, SessionListener
from box_tracker.services.commit import CommitService
from box_tracker.services.images import ImagePreprocessor
from box_tracker.services.inventory import InventoryRepository, InventoryService

SAMPLE_PHOTO = "data:image/jpeg;base64," + "A" * 200
ACCESS_TOKEN = "token-1"
USER_ID = "user-1"

ITEM_JSON = (
    '{"items": [{"name": "Coffee Maker", "description": "Drip coffee maker",'
    ' "category": "Kitchen"}]}'
)


def make_image_bytes(
    width: int = 40, height: int = 20, image_format: str = "PNG"
) -> bytes:
    """Return an encoded solid-color test image."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(120, 80, 40)).save(
        buffer, format=image_format
    )
    return buffer.getvalue()


def photo_payload(label: str) -> str:
    """Return a distinct data URL long enough to pass payload validation."""
    body = base64.b64encode(label.encode() * 40).decode()
    return f"data:image/jpeg;base64,{body}"


@dataclass
class InMemoryInventoryRepository(InventoryRepository):
    """In-memory inventory repository for tests.

    ``failures`` maps an operation name to how many more calls should raise;
    a negative count fails forever.
    """

    boxes: dict[str, Box] = field(default_factory=dict)
    items: dict[str, Item] = field(default_factory=dict)
    groups: dict[str, Group] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    _ids: count = field(default_factory=lambda: count(1))

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        remaining = self.failures.get(operation, 0)
        if remaining == 0:
            return
        if remaining > 0:
            self.failures[operation] = remaining - 1
        raise RuntimeError(f"{operation} unavailable")

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def create_box(self, user_id: str, payload: dict[str, object]) -> Box:
        self._enter("create_box")
        box = Box(
            id=self._next_id("box"),
            user_id=user_id,
            box_number=int(payload.get("box_number") or 1),
            group=str(payload.get("group") or ""),
            category=str(payload.get("category") or ""),
            summary=str(payload.get("summary") or ""),
            color_code=str(payload.get("color_code") or DEFAULT_COLOR_CODE),
            created_at=datetime.now(tz=UTC),
            location=payload.get("location"),
            notes=payload.get("notes"),
            photo=payload.get("photo"),
        )
        self.boxes[box.id] = box
        return box

    def get_box(self, box_id: str) -> Box | None:
        self._enter("get_box")
        return self.boxes.get(box_id)

    def list_boxes(self, user_id: str, group: str | None = None) -> list[Box]:
        self._enter("list_boxes")
        boxes = [
            box
            for box in self.boxes.values()
            if box.user_id == user_id and (group is None or box.group == group)
        ]
        return list(reversed(boxes))

    def update_box(self, box_id: str, updates: dict[str, object]) -> None:
        self._enter("update_box")
        current = self.boxes[box_id]
        fields = {key: value for key, value in updates.items() if value is not None}
        self.boxes[box_id] = Box(**{**current.__dict__, **fields})

    def delete_box(self, box_id: str) -> None:
        self._enter("delete_box")
        self.boxes.pop(box_id, None)
        for item_id in [i.id for i in self.items.values() if i.box_id == box_id]:
            self.items.pop(item_id)

    def create_item(
        self, box_id: str, user_id: str, payload: dict[str, object]
    ) -> Item:
        self._enter("create_item")
        item = Item(
            id=self._next_id("item"),
            box_id=box_id,
            user_id=user_id,
            name=str(payload["name"]),
            created_at=datetime.now(tz=UTC),
            notes=payload.get("notes"),
            category=payload.get("category"),
            photo=payload.get("photo"),
        )
        self.items[item.id] = item
        return item

    def get_item(self, box_id: str, item_id: str) -> Item | None:
        self._enter("get_item")
        item = self.items.get(item_id)
        if item is None or item.box_id != box_id:
            return None
        return item

    def list_items(self, box_id: str) -> list[Item]:
        self._enter("list_items")
        return [item for item in self.items.values() if item.box_id == box_id]

    def update_item(
        self, box_id: str, item_id: str, updates: dict[str, object]
    ) -> None:
        self._enter("update_item")
        current = self.items[item_id]
        self.items[item_id] = Item(**{**current.__dict__, **updates})

    def delete_item(self, box_id: str, item_id: str) -> None:
        self._enter("delete_item")
        item = self.items.get(item_id)
        if item is not None and item.box_id == box_id:
            del self.items[item_id]

    def create_group(self, user_id: str, name: str) -> Group:
        self._enter("create_group")
        group = Group(
            id=self._next_id("group"),
            user_id=user_id,
            name=name,
            created_at=datetime.now(tz=UTC),
        )
        self.groups[group.id] = group
        return group

    def list_groups(self, user_id: str) -> list[Group]:
        self._enter("list_groups")
        groups = [g for g in self.groups.values() if g.user_id == user_id]
        return sorted(groups, key=lambda group: group.name)


@dataclass
class FakeAuthProvider(AuthProvider):
    """Auth provider that accepts one fixed token."""

    tokens: dict[str, str] = field(default_factory=lambda: {ACCESS_TOKEN: USER_ID})
    session: AuthSession | None = None
    listeners: list[SessionListener] = field(default_factory=list)

    def sign_in(self, email: str, password: str) -> AuthSession:
        self.session = AuthSession(
            user_id=USER_ID, access_token=ACCESS_TOKEN, email=email
        )
        self._notify()
        return self.session

    def sign_up(self, email: str, password: str) -> AuthSession:
        return self.sign_in(email, password)

    def sign_out(self) -> None:
        self.session = None
        self._notify()

    def current_session(self) -> AuthSession | None:
        return self.session

    def get_user_id(self, access_token: str) -> str | None:
        return self.tokens.get(access_token)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self.listeners):
            listener(self.session)


@dataclass
class FakeAnalysisClient(AnalysisClient):
    """Analysis client replaying scripted outcomes.

    Each outcome is either raw response text or an exception to raise. The
    last outcome repeats once the script runs out.
    """

    outcomes: list[str | Exception] = field(default_factory=lambda: [ITEM_JSON])
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str,
        max_tokens: int,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "prompt": prompt,
                "image_data_url": image_data_url,
                "max_tokens": max_tokens,
            }
        )
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class FakeAnalyzer:
    """Photo analyzer that tracks overlapping calls.

    ``errors`` maps a photo payload to the exception it should raise.
    ``gate`` (when set) blocks every call until released.
    """

    errors: dict[str, Exception] = field(default_factory=dict)
    gate: asyncio.Event | None = None
    seen: list[str] = field(default_factory=list)
    contexts: list[str | None] = field(default_factory=list)
    active: int = 0
    max_active: int = 0

    async def analyze(self, photo: str, context: str | None = None) -> AnalyzedItem:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.seen.append(photo)
        self.contexts.append(context)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if photo in self.errors:
                raise self.errors[photo]
            return AnalyzedItem(
                name=f"item {len(self.seen)}",
                description="described",
                category="Misc",
                photo=photo,
            )
        finally:
            self.active -= 1


@dataclass
class FakeCamera:
    """Camera that can refuse profiles and records its lifecycle."""

    log: list[str]
    refuse_profiles: int = 0
    frame: bytes = field(default_factory=make_image_bytes)

    async def open(self, profile: dict[str, object]) -> None:
        self.log.append("open")
        opened = sum(1 for entry in self.log if entry == "open")
        if opened <= self.refuse_profiles:
            raise RuntimeError("OverconstrainedError")

    async def capture(self) -> bytes:
        self.log.append("capture")
        return self.frame

    async def close(self) -> None:
        self.log.append("close")


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="header.payload.signature",
        openai_api_key="openai-key",
        store_retry_delay_seconds=0,
    )


@pytest.fixture
def inventory_repository() -> InMemoryInventoryRepository:
    return InMemoryInventoryRepository()


@pytest.fixture
def inventory_service(
    inventory_repository: InMemoryInventoryRepository,
) -> InventoryService:
    return InventoryService(
        repository=inventory_repository,
        base_url="https://boxes.example.com/",
        retry_delay_seconds=0,
        sleep=lambda _seconds: None,
    )


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def analysis_service(analysis_client: FakeAnalysisClient) -> AnalysisService:
    return AnalysisService(
        client=analysis_client,
        model="gpt-4o-mini",
        rate_limiter=RateLimiter(max_requests_per_minute=10),
        sleep=no_sleep,
        jitter=lambda: 0.0,
    )


@pytest.fixture
def container(
    settings: Settings,
    inventory_service: InventoryService,
    analysis_service: AnalysisService,
) -> AppContainer:
    preprocessor = ImagePreprocessor()
    commit_service = CommitService(inventory_service)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        auth_service=AuthService(FakeAuthProvider()),
        inventory_service=inventory_service,
        analysis_service=analysis_service,
        preprocessor=preprocessor,
        commit_service=commit_service,
        capture_sessions=build_capture_registry(
            analysis_service, preprocessor, commit_service
        ),
        close_resources=close_resources,
    )
