"""Tests for domain entities and their conversion rules."""

from datetime import timedelta

import pytest
from conftest import PUBKEY_A, PUBKEY_B

from lnbridge.domain.enums import InvoiceStatus, PaymentStatus, PayResult
from lnbridge.domain.models import (
    CreateInvoiceParams,
    LightningInvoice,
    LightningNodeInformation,
    LightningPayment,
    OpenChannelRequest,
    PayResponse,
)
from lnbridge.domain.value_objects import LightMoney, NodeInfo


class TestLightningNodeInformation:
    """Lenient URI policy: malformed entries are dropped, order is kept."""

    def test_drops_unparseable_uris(self) -> None:
        info = LightningNodeInformation.from_uris(
            800_000,
            [
                f"{PUBKEY_A}@a.example:9735",
                "garbage",
                f"{PUBKEY_B}@b.example:9736",
            ],
        )

        assert info.block_height == 800_000
        assert [n.host for n in info.node_info_list] == ["a.example", "b.example"]

    def test_all_invalid_gives_empty_list(self) -> None:
        info = LightningNodeInformation.from_uris(1, ["x", "y@"])
        assert info.node_info_list == ()

    def test_to_dict(self) -> None:
        info = LightningNodeInformation.from_uris(5, [f"{PUBKEY_A}@host"])
        assert info.to_dict() == {
            "block_height": 5,
            "node_info_list": [f"{PUBKEY_A}@host:9735"],
        }


class TestLightningPayment:
    """Net amount is total minus fee, only when both are known."""

    def test_net_amount_from_total_and_fee(self) -> None:
        payment = LightningPayment.from_totals(
            total_amount=LightMoney(10_000),
            fee_amount=LightMoney(100),
            id="p1",
            payment_hash="h",
            status=PaymentStatus.COMPLETE,
        )

        assert payment.amount == LightMoney(9_900)
        assert payment.amount_sent == LightMoney(10_000)

    @pytest.mark.parametrize(
        "total,fee",
        [(LightMoney(10_000), None), (None, LightMoney(100)), (None, None)],
    )
    def test_net_amount_absent_without_both_operands(self, total, fee) -> None:
        payment = LightningPayment.from_totals(
            total_amount=total,
            fee_amount=fee,
            id="p1",
            payment_hash="h",
            status=PaymentStatus.PENDING,
        )

        assert payment.amount is None
        assert payment.amount_sent == total

    def test_zero_fee_gives_full_amount(self) -> None:
        payment = LightningPayment.from_totals(
            total_amount=LightMoney(500),
            fee_amount=LightMoney(0),
            id=None,
            payment_hash=None,
            status=PaymentStatus.UNKNOWN,
        )
        assert payment.amount == LightMoney(500)


class TestLightningInvoice:
    def test_is_paid(self) -> None:
        invoice = LightningInvoice(id="i", bolt11="lnbc1", status=InvoiceStatus.PAID)
        assert invoice.is_paid
        assert not LightningInvoice(id="i", bolt11="lnbc1", status=InvoiceStatus.UNPAID).is_paid

    def test_to_dict_uses_msat(self) -> None:
        invoice = LightningInvoice(
            id="i", bolt11="lnbc1", status=InvoiceStatus.UNPAID, amount=LightMoney(2_000)
        )
        data = invoice.to_dict()

        assert data["status"] == "unpaid"
        assert data["amount_msat"] == 2_000
        assert data["amount_received_msat"] is None


class TestRequests:
    def test_invoice_expiry_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="expiry must be positive"):
            CreateInvoiceParams(amount=LightMoney(1), description="", expiry=timedelta(0))

    def test_channel_amount_must_be_positive(self) -> None:
        node = NodeInfo.parse(f"{PUBKEY_A}@host")
        with pytest.raises(ValueError, match="Channel amount must be positive"):
            OpenChannelRequest(node_info=node, channel_amount_sat=0)

    def test_fee_rate_must_be_positive(self) -> None:
        node = NodeInfo.parse(f"{PUBKEY_A}@host")
        with pytest.raises(ValueError, match="Fee rate must be positive"):
            OpenChannelRequest(node_info=node, channel_amount_sat=100_000, fee_rate_sat_per_vbyte=0)

    def test_pay_response_succeeded(self) -> None:
        assert PayResponse(result=PayResult.OK).succeeded
        assert not PayResponse(result=PayResult.COULD_NOT_FIND_ROUTE).succeeded
