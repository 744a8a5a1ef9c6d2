# ticketing/routes/payments.py
from fastapi import APIRouter, Depends

from ticketing.database import get_database
from ticketing.models.payment import CreateOrderRequest, OrderResponse, VerifyPaymentRequest, VerifyPaymentResponse
from ticketing.services.booking import issue_order, verify_payment
from ticketing.services.gateway import get_gateway
from ticketing.services.mailer import get_mailer
from ticketing.services.ticket_pdf import generate_ticket_pdf

router = APIRouter()


def get_pdf_renderer():
    return generate_ticket_pdf


@router.post("/razorpay", response_model=OrderResponse)
async def create_order(request: CreateOrderRequest, gateway=Depends(get_gateway)):
    return await issue_order(gateway, request)


@router.post("/razorpay/verify", response_model=VerifyPaymentResponse, response_model_exclude_none=True)
async def verify(
    request: VerifyPaymentRequest,
    db=Depends(get_database),
    gateway=Depends(get_gateway),
    mailer=Depends(get_mailer),
    render_pdf=Depends(get_pdf_renderer),
):
    return await verify_payment(db, gateway, mailer, request, render_pdf=render_pdf)
