# backend/routers/token.py

from typing import Optional, Union

from fastapi import APIRouter, Request
from pydantic import BaseModel, StrictInt

from erc20.mock_token import MockToken

router = APIRouter(prefix="/tokens")

# StrictInt: JSON true/false 가 1/0 으로 바뀌지 않도록
Amount = Union[StrictInt, str]


class SetBalanceBody(BaseModel):
    sender: str
    passphrase: str
    owner: str
    value: Amount
    gas_price: Optional[Amount] = None


class ConversionRateBody(BaseModel):
    sender: str
    passphrase: str
    conversion_rate: Amount
    gas_price: Optional[Amount] = None


class ApproveBody(BaseModel):
    sender: str
    passphrase: str
    spender: str
    value: Amount
    gas_price: Optional[Amount] = None


def _token(request: Request) -> MockToken:
    return request.app.state.token


@router.get("/{contract}/balances/{holder}")
def balance_of(contract: str, holder: str, request: Request):
    balance = _token(request).balance_of(contract, holder)
    # wei 단위 큰 정수는 문자열로 내려준다 (JS 클라이언트 정밀도)
    return {"ok": True, "contract": contract, "holder": holder, "balance": str(balance)}


@router.post("/{contract}/balances")
def set_balance(contract: str, body: SetBalanceBody, request: Request):
    receipt = _token(request).set_balance(
        contract, body.sender, body.passphrase, body.owner, body.value, body.gas_price
    )
    return {"ok": True, "receipt": receipt.to_dict()}


@router.post("/{contract}/conversion-rate")
def set_conversion_rate(contract: str, body: ConversionRateBody, request: Request):
    receipt = _token(request).set_conversion_rate(
        contract, body.sender, body.passphrase, body.conversion_rate, body.gas_price
    )
    return {"ok": True, "receipt": receipt.to_dict()}


@router.post("/{contract}/approvals")
def approve(contract: str, body: ApproveBody, request: Request):
    receipt = _token(request).approve(
        contract, body.sender, body.passphrase, body.spender, body.value, body.gas_price
    )
    return {"ok": True, "receipt": receipt.to_dict()}
