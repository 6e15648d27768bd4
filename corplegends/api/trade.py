"""
Trade market endpoints.

Market offers are advertised only. Burn trades live under /album.
"""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from corplegends.api.album import AlbumServiceDep
from corplegends.models.card import Department
from corplegends.models.trade_offer import TradeOffer

router = APIRouter(prefix="/trade", tags=["trade"])


class TradeOfferModel(BaseModel):
    id: str
    user_name: str
    offering_department: Department | None = None
    requesting: Department
    offering_card_ids: list[int] = Field(default_factory=list)

    @classmethod
    def from_offer(cls, offer: TradeOffer) -> "TradeOfferModel":
        return cls(
            id=offer.id,
            user_name=offer.user_name,
            offering_department=offer.offering_department,
            requesting=offer.requesting,
            offering_card_ids=list(offer.offering_card_ids),
        )


class OfferRequest(BaseModel):
    """Request model for declaring an offer."""

    offering_card_ids: list[int] = Field(
        ...,
        description="Spare duplicate card ids to advertise",
        examples=[[12, 40]],
    )
    requesting: Department = Field(..., examples=["Marketing"])


class MarketResponse(BaseModel):
    offers: list[TradeOfferModel] = Field(default_factory=list)


@router.get("/market", response_model=MarketResponse)
async def get_market(service: AlbumServiceDep) -> MarketResponse:
    """List sample offers and every declared offer."""
    offers = await service.market()
    return MarketResponse(offers=[TradeOfferModel.from_offer(o) for o in offers])


@router.post(
    "/{user_id}/offers",
    response_model=TradeOfferModel,
    status_code=status.HTTP_201_CREATED,
)
async def declare_offer(
    user_id: str,
    request: OfferRequest,
    service: AlbumServiceDep,
) -> TradeOfferModel:
    """
    Advertise spare duplicates on the market.

    The offer is never settled and reserves nothing.
    """
    offer = await service.declare_offer(user_id, request.offering_card_ids, request.requesting)
    return TradeOfferModel.from_offer(offer)


@router.delete("/{user_id}/offers", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_offers(user_id: str, service: AlbumServiceDep) -> None:
    """Withdraw every offer the user declared."""
    await service.withdraw_offers(user_id)
