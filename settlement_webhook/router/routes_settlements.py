from fastapi import APIRouter, Depends, Request, status

from settlement_webhook.dto.notification import ErrorResponse
from settlement_webhook.dto.settlement import SettlementRecord
from settlement_webhook.services.ledger import Ledger
from settlement_webhook.utils.exceptions import SettlementNotFound

router = APIRouter(prefix="/v1/settlements", tags=["settlements"])


def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


@router.get(
    "/{transaction_id}",
    response_model=SettlementRecord,
    status_code=status.HTTP_200_OK,
    responses={404: {"model": ErrorResponse}},
)
async def get_settlement(transaction_id: str, ledger: Ledger = Depends(get_ledger)) -> SettlementRecord:
    settlement = await ledger.get(transaction_id)
    if settlement is None:
        raise SettlementNotFound(f"no settlement for transaction {transaction_id}")
    return settlement
