"""Fee schedule and fee engine tests."""

from decimal import Decimal

import pytest

from chargeflow.domain.charges.exceptions import InvalidAmount, UnsupportedMethod
from chargeflow.domain.charges.models import PaymentMethod
from chargeflow.domain.rates import FeeEngine, RateTable


@pytest.fixture
def engine() -> FeeEngine:
    return FeeEngine(RateTable.default())


class TestComputeFee:
    def test_pix_rounds_half_to_even(self, engine):
        # 148.5 rounds down to the even neighbour
        assert engine.compute_fee(15000, "pix") == 148
        # 49.5 rounds up to the even neighbour
        assert engine.compute_fee(5000, "pix") == 50

    def test_card_fees_add_fixed_component(self, engine):
        assert engine.compute_fee(10000, PaymentMethod.CREDIT_CARD) == 388
        assert engine.compute_fee(10000, PaymentMethod.DEBIT_CARD) == 218

    def test_boleto_is_flat(self, engine):
        assert engine.compute_fee(10000, "boleto") == 250
        assert engine.compute_fee(99999, "boleto") == 250

    def test_crypto_percentage(self, engine):
        assert engine.compute_fee(5000, "usdt") == 25
        assert engine.compute_fee(10000, "bitcoin") == 80

    def test_unknown_method(self, engine):
        with pytest.raises(UnsupportedMethod):
            engine.compute_fee(1000, "paypal")


class TestQuote:
    def test_quote_splits_amount(self, engine):
        quote = engine.quote(15000, "pix")
        assert (quote.amount, quote.fee, quote.net_amount) == (15000, 148, 14852)

    def test_fee_never_reaches_amount(self, engine):
        for amount in (1, 37, 999, 10000, 123457):
            for method in PaymentMethod:
                try:
                    quote = engine.quote(amount, method)
                except InvalidAmount:
                    continue
                assert 0 <= quote.fee < quote.amount
                assert quote.net_amount == quote.amount - quote.fee

    @pytest.mark.parametrize("amount", [0, -100, True, 10.5, "100"])
    def test_rejects_non_positive_or_non_integer(self, engine, amount):
        with pytest.raises(InvalidAmount):
            engine.quote(amount, "pix")

    def test_rejects_amount_not_covering_fee(self, engine):
        with pytest.raises(InvalidAmount):
            engine.quote(250, "boleto")
        with pytest.raises(InvalidAmount):
            engine.quote(39, "credit_card")

    def test_rejects_amount_outside_method_range(self):
        table = RateTable.default({"pix": {"min_amount": 100, "max_amount": 1000}})
        engine = FeeEngine(table)
        with pytest.raises(InvalidAmount):
            engine.quote(99, "pix")
        with pytest.raises(InvalidAmount):
            engine.quote(1001, "pix")
        assert engine.quote(1000, "pix").fee == 10


class TestCryptoConversion:
    def test_usdt_is_one_to_one_per_major_unit(self, engine):
        assert engine.to_crypto_amount(5000, "usdt") == Decimal("50.00000000")

    def test_quantized_to_eight_places(self, engine):
        amount = engine.to_crypto_amount(12345, "bitcoin")
        assert amount == Decimal("0.00283935")
        assert amount.as_tuple().exponent == -8

    def test_non_crypto_method(self, engine):
        with pytest.raises(UnsupportedMethod):
            engine.to_crypto_amount(5000, "pix")

    def test_custom_rate_source(self):
        class FixedRate:
            def get_rate(self, method):
                return Decimal("0.5")

        engine = FeeEngine(RateTable.default(), rate_source=FixedRate())
        assert engine.to_crypto_amount(1000, "ethereum") == Decimal("5.00000000")


class TestRateTable:
    def test_default_schedule(self):
        table = RateTable.default()
        assert len(table.methods()) == 8
        bitcoin = table.get("bitcoin")
        assert bitcoin.confirmations == 3
        assert bitcoin.network == "Bitcoin"
        assert table.get("ethereum").confirmations == 12
        assert table.get("bnb").confirmations == 15
        assert table.get("usdt").confirmations == 1

    def test_overrides_are_applied(self):
        table = RateTable.default({"pix": {"percentage_rate": "0.5"}})
        assert table.get("pix").percentage_rate == Decimal("0.5")
        assert FeeEngine(table).compute_fee(15000, "pix") == 75

    def test_disabled_method_is_unsupported(self):
        table = RateTable.default({"bnb": {"enabled": False}})
        with pytest.raises(UnsupportedMethod):
            table.get("bnb")
        assert PaymentMethod.BNB not in {rate.method for rate in table.methods()}

    def test_overrides_for_unknown_method(self):
        with pytest.raises(ValueError):
            RateTable.default({"paypal": {"fixed_rate": 10}})

    def test_method_lookup_is_case_insensitive(self):
        assert RateTable.default().get(" PIX ").method is PaymentMethod.PIX
