"""
Roster Provider — supplies the ordered card roster.

The roster always starts with the fixed headline cards (ids 1-7). The rest
is built from employee templates fetched from the first source that answers:

1. Generative source (Anthropic Messages API returning JSON records)
2. HTTP source (a JSON document of records)
3. The last roster stored in the roster cache
4. A deterministic static fallback

Templates are cycled to fill `roster_size` slots; cycled copies get the slot
id appended to their name. The base roster is fetched once per provider
instance. Admin overrides are merged on every read.

INVARIANTS:
- Card ids are 1..roster_size, contiguous and stable across sessions
- A source failure never blocks: the next source is tried
- The returned roster is never empty unless every fallback is empty
"""

import asyncio
import logging
from functools import lru_cache
from itertools import cycle

import anthropic
import httpx
from anthropic.types import TextBlock
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from corplegends.config import settings
from corplegends.db.operations import ROSTER_CACHE
from corplegends.models.card import Card, Department, Rarity
from corplegends.models.failure import RosterUnavailableError, StorageFailureError
from corplegends.services.album_store import AlbumStore, get_album_store
from corplegends.services.card_overrides import apply_overrides, load_overrides

logger = logging.getLogger(__name__)

ROSTER_CACHE_KEY = "default"
DEFAULT_ROSTER_SIZE = 250


def _image_ref(seed: str) -> str:
    return f"https://picsum.photos/seed/{seed}/300/400"


FIXED_STARTER_CARDS: tuple[Card, ...] = (
    Card(
        id=1,
        name="Elena Marquez",
        role="Chief Executive Officer",
        department=Department.DIRECTION,
        rarity=Rarity.LEGENDARY,
        image_ref=_image_ref("headline1"),
        description="Sets the course and never loses sight of the horizon.",
        power=99,
    ),
    Card(
        id=2,
        name="Victor Chen",
        role="Regional Sales Director",
        department=Department.SALES,
        rarity=Rarity.EPIC,
        image_ref=_image_ref("headline2"),
        description="Closes the deals everyone else called impossible.",
        power=95,
    ),
    Card(
        id=3,
        name="Amara Okafor",
        role="Head of Brand",
        department=Department.MARKETING,
        rarity=Rarity.EPIC,
        image_ref=_image_ref("headline3"),
        description="Turns a product launch into a story people repeat.",
        power=92,
    ),
    Card(
        id=4,
        name="Lucas Ferreira",
        role="People & Culture Lead",
        department=Department.HR,
        rarity=Rarity.RARE,
        image_ref=_image_ref("headline4"),
        description="Knows every name and every birthday.",
        power=88,
    ),
    Card(
        id=5,
        name="Priya Nair",
        role="Chief Financial Officer",
        department=Department.FINANCE,
        rarity=Rarity.RARE,
        image_ref=_image_ref("headline5"),
        description="Balances the books and the budget meetings.",
        power=85,
    ),
    Card(
        id=6,
        name="Tomas Lindqvist",
        role="Plant Operations Manager",
        department=Department.OPERATIONS,
        rarity=Rarity.COMMON,
        image_ref=_image_ref("headline6"),
        description="Keeps the line moving, shift after shift.",
        power=80,
    ),
    Card(
        id=7,
        name="Grace Kim",
        role="Full Stack Developer",
        department=Department.IT,
        rarity=Rarity.COMMON,
        image_ref=_image_ref("headline7"),
        description="Ships on Friday and sleeps fine.",
        power=78,
    ),
)

FIXED_COUNT = len(FIXED_STARTER_CARDS)


class EmployeeTemplate(BaseModel):
    """One generated employee record, before an id is assigned."""

    name: str = Field(min_length=1)
    role: str
    department: Department
    rarity: Rarity
    description: str = ""
    power: int = Field(ge=1, le=99)


_TEMPLATES_ADAPTER = TypeAdapter(list[EmployeeTemplate])


def _fallback_rarity(index: int) -> Rarity:
    if index % 20 == 0:
        return Rarity.LEGENDARY
    if index % 10 == 0:
        return Rarity.EPIC
    if index % 5 == 0:
        return Rarity.RARE
    return Rarity.COMMON


def build_fallback_roster(total: int = DEFAULT_ROSTER_SIZE) -> list[Card]:
    """
    Build the deterministic static roster.

    Departments rotate across slots; rarity follows the slot index
    (every 20th Legendary, every 10th Epic, every 5th Rare).
    """
    departments = list(Department)
    roster = list(FIXED_STARTER_CARDS[:total])

    for index in range(FIXED_COUNT, total):
        card_id = index + 1
        department = departments[index % len(departments)]
        roster.append(
            Card(
                id=card_id,
                name=f"Colleague {card_id}",
                role=f"{department.value} Specialist",
                department=department,
                rarity=_fallback_rarity(index),
                image_ref=_image_ref(str(card_id)),
                description="Committed to excellence and to the company's values.",
                power=(card_id * 37) % 99 + 1,
            )
        )

    return roster


def expand_roster(
    templates: list[EmployeeTemplate], total: int = DEFAULT_ROSTER_SIZE
) -> list[Card]:
    """
    Build a full roster from templates.

    The fixed cards take ids 1-7. Templates fill the remaining slots in
    order and are cycled when they run out; cycled copies are renamed
    with their slot id and given a derived power.

    Returns the static fallback roster if there are no templates.
    """
    if not templates:
        return build_fallback_roster(total)

    roster = list(FIXED_STARTER_CARDS[:total])
    source = cycle(templates)

    for slot in range(max(0, total - FIXED_COUNT)):
        card_id = slot + FIXED_COUNT + 1
        template = next(source)
        is_clone = slot >= len(templates)
        roster.append(
            Card(
                id=card_id,
                name=f"{template.name} ({card_id})" if is_clone else template.name,
                role=template.role,
                department=template.department,
                rarity=template.rarity,
                image_ref=_image_ref(f"{''.join(template.name.split())}{card_id}"),
                description=template.description,
                power=(template.power + card_id) % 99 + 1 if is_clone else template.power,
            )
        )

    return roster


# =============================================================================
# SOURCES
# =============================================================================


class RosterSource:
    """A place employee templates can be fetched from."""

    name = "source"

    async def fetch_templates(self) -> list[EmployeeTemplate]:
        raise NotImplementedError


GENERATION_PROMPT = """Generate a JSON array of 40 corporate employees for the company \
'LICON'. Assign them to these departments: {departments}. Use these rarities: \
{rarities}, with Common the most frequent and Legendary the rarest. Roles such as \
'Chief Executive Officer', 'Regional Manager', 'Senior Analyst', 'Full Stack Developer', \
'Accountant', 'Warehouse Lead'. Descriptions are professional but inspiring, one sentence.

Each element must be an object with exactly these keys:
name (string), role (string), department (one of the departments), \
rarity (one of the rarities), description (string), power (integer 1-99).

Respond with the JSON array only."""


def _extract_json_array(text: str) -> str:
    """Cut the outermost JSON array out of a model reply."""
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end < start:
        raise ValueError("Reply contains no JSON array")
    return text[start : end + 1]


class GenerativeRosterSource(RosterSource):
    """Employee templates generated by Claude."""

    name = "generative"

    def __init__(
        self,
        api_key: str,
        model: str,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = client

    async def fetch_templates(self) -> list[EmployeeTemplate]:
        client = self._client or anthropic.AsyncAnthropic(api_key=self._api_key)
        prompt = GENERATION_PROMPT.format(
            departments=", ".join(d.value for d in Department),
            rarities=", ".join(r.value for r in Rarity),
        )

        response = await client.messages.create(
            model=self._model,
            max_tokens=8192,
            messages=[{"role": "user", "content": prompt}],
        )

        text = "".join(block.text for block in response.content if isinstance(block, TextBlock))
        return _TEMPLATES_ADAPTER.validate_json(_extract_json_array(text))


class HttpRosterSource(RosterSource):
    """Employee templates served as a JSON array over HTTP."""

    name = "http"

    def __init__(self, url: str, timeout: float = 30.0) -> None:
        self._url = url
        self._timeout = timeout

    async def fetch_templates(self) -> list[EmployeeTemplate]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(self._url, headers={"User-Agent": "CorporateLegends/1.0"})
            response.raise_for_status()
            return _TEMPLATES_ADAPTER.validate_python(response.json())


# =============================================================================
# PROVIDER
# =============================================================================


class RosterProvider:
    """
    Session-scoped roster access.

    Args:
        sources: Template sources, tried in order
        store: Blob store for the roster cache and admin overrides
        roster_size: Total cards in the roster
    """

    def __init__(
        self,
        sources: list[RosterSource] | None = None,
        store: AlbumStore | None = None,
        roster_size: int = DEFAULT_ROSTER_SIZE,
    ) -> None:
        self._sources = sources or []
        self._store = store
        self._roster_size = roster_size
        self._base_roster: list[Card] | None = None
        self._fetch_lock = asyncio.Lock()

    async def get_roster(self) -> list[Card]:
        """
        Get the roster with admin overrides applied.

        Raises:
            RosterUnavailableError: If no roster could be produced at all
        """
        base = await self.get_base_roster()
        if self._store is None:
            return list(base)
        overrides = await load_overrides(self._store)
        return apply_overrides(base, overrides)

    async def get_base_roster(self) -> list[Card]:
        """Get the roster before overrides, fetching it on first use."""
        if self._base_roster is None:
            async with self._fetch_lock:
                # Concurrent first requests share one fetch
                if self._base_roster is None:
                    self._base_roster = await self._fetch()
        if not self._base_roster:
            raise RosterUnavailableError("Every roster source returned an empty roster")
        return self._base_roster

    async def refresh(self) -> list[Card]:
        """Drop the session roster and fetch it again."""
        self._base_roster = None
        return await self.get_base_roster()

    async def _fetch(self) -> list[Card]:
        for source in self._sources:
            try:
                templates = await source.fetch_templates()
            except (httpx.HTTPError, anthropic.APIError, ValidationError, ValueError) as e:
                logger.warning(
                    "ROSTER_SOURCE_FAILED",
                    extra={"source": source.name, "error": type(e).__name__},
                )
                continue

            if not templates:
                logger.warning("ROSTER_SOURCE_EMPTY", extra={"source": source.name})
                continue

            roster = expand_roster(templates, self._roster_size)
            logger.info(
                "ROSTER_LOADED",
                extra={"source": source.name, "templates": len(templates), "cards": len(roster)},
            )
            await self._write_cache(roster)
            return roster

        cached = await self._read_cache()
        if cached:
            logger.info("ROSTER_LOADED", extra={"source": "cache", "cards": len(cached)})
            return cached

        logger.info("ROSTER_LOADED", extra={"source": "static", "cards": self._roster_size})
        return build_fallback_roster(self._roster_size)

    async def _read_cache(self) -> list[Card]:
        if self._store is None:
            return []
        try:
            data = await self._store.get_json(ROSTER_CACHE, ROSTER_CACHE_KEY)
        except StorageFailureError:
            logger.warning("ROSTER_CACHE_UNREADABLE")
            return []
        if not data:
            return []
        try:
            return [Card.from_dict(raw) for raw in data]
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("ROSTER_CACHE_UNREADABLE", extra={"error": type(e).__name__})
            return []

    async def _write_cache(self, roster: list[Card]) -> None:
        if self._store is None:
            return
        try:
            await self._store.set_json(
                ROSTER_CACHE, ROSTER_CACHE_KEY, [card.to_dict() for card in roster]
            )
        except StorageFailureError:
            # Cache is an optimization; the roster itself is still usable
            logger.warning("ROSTER_CACHE_WRITE_FAILED", extra={"cards": len(roster)})


def build_sources(api_key: str, model: str, roster_url: str) -> list[RosterSource]:
    """Configured sources, generative first."""
    sources: list[RosterSource] = []
    if api_key:
        sources.append(GenerativeRosterSource(api_key=api_key, model=model))
    if roster_url:
        sources.append(HttpRosterSource(roster_url))
    return sources


@lru_cache(maxsize=1)
def get_roster_provider() -> RosterProvider:
    """Get the application-wide provider, configured from settings."""
    return RosterProvider(
        sources=build_sources(
            settings.anthropic_api_key, settings.roster_model, settings.roster_url
        ),
        store=get_album_store(),
        roster_size=settings.roster_size,
    )
