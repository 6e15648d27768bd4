from dataclasses import dataclass
from enum import Enum


class Department(str, Enum):
    """Closed set of company departments a card can belong to."""

    DIRECTION = "Direction"
    SALES = "Sales"
    MARKETING = "Marketing"
    HR = "Human Resources"
    FINANCE = "Finance"
    OPERATIONS = "Operations"
    IT = "IT"
    LOGISTICS = "Logistics"


class Rarity(str, Enum):
    """Card rarity, declared from most to least common."""

    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"

    @property
    def scarcity(self) -> int:
        """Rank by scarcity: 0 for Common up to 3 for Legendary."""
        return list(Rarity).index(self)


@dataclass(frozen=True, slots=True)
class Card:
    """
    A roster entry.

    Attributes:
        id: Positive integer identity, stable across sessions
        name: Employee name printed on the card
        role: Job title
        department: Department the employee belongs to
        rarity: Card rarity
        image_ref: URL or data URI of the card art
        description: Flavour text
        power: Card power, 1-99
    """

    id: int
    name: str
    role: str
    department: Department
    rarity: Rarity
    image_ref: str = ""
    description: str = ""
    power: int = 1

    def to_dict(self) -> dict[str, str | int]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "department": self.department.value,
            "rarity": self.rarity.value,
            "image_ref": self.image_ref,
            "description": self.description,
            "power": self.power,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Card":
        """Build a card from a dict produced by `to_dict`."""
        return cls(
            id=int(data["id"]),  # type: ignore[call-overload]
            name=str(data["name"]),
            role=str(data.get("role", "")),
            department=Department(data["department"]),
            rarity=Rarity(data["rarity"]),
            image_ref=str(data.get("image_ref", "")),
            description=str(data.get("description", "")),
            power=int(data.get("power", 1)),  # type: ignore[call-overload]
        )
