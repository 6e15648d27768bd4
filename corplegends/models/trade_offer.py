from dataclasses import dataclass, field

from corplegends.models.card import Department


@dataclass(frozen=True, slots=True)
class TradeOffer:
    """
    A peer-declared market offer.

    Offers are cosmetic: they advertise intent and are never enforced
    against either party's collection.

    Attributes:
        id: Offer id
        user_name: Display name of the player posting the offer
        offering_department: Department the player offers cards from
        requesting: Department the player is looking for
        offering_card_ids: Specific duplicate card ids on offer, if any
    """

    id: str
    user_name: str
    offering_department: Department | None
    requesting: Department
    offering_card_ids: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_name": self.user_name,
            "offering_department": (
                self.offering_department.value if self.offering_department else None
            ),
            "requesting": self.requesting.value,
            "offering_card_ids": list(self.offering_card_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "TradeOffer":
        raw_offering = data.get("offering_department")
        raw_cards: list[int] = data.get("offering_card_ids", [])  # type: ignore[assignment]
        return cls(
            id=str(data["id"]),
            user_name=str(data["user_name"]),
            offering_department=Department(raw_offering) if raw_offering else None,
            requesting=Department(data["requesting"]),
            offering_card_ids=tuple(int(i) for i in raw_cards),
        )


# Sample market shown to every player
SAMPLE_MARKET_OFFERS: tuple[TradeOffer, ...] = (
    TradeOffer(
        id="sample-1",
        user_name="Sara_Style",
        offering_department=Department.SALES,
        requesting=Department.MARKETING,
    ),
    TradeOffer(
        id="sample-2",
        user_name="Mike_Gamer",
        offering_department=Department.OPERATIONS,
        requesting=Department.IT,
    ),
    TradeOffer(
        id="sample-3",
        user_name="Chef_Juan",
        offering_department=Department.HR,
        requesting=Department.FINANCE,
    ),
)
