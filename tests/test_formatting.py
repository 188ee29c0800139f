"""Tests for XAF formatting and WhatsApp links."""
from urllib.parse import parse_qs, urlparse

import pytest

from fastmeuble_server.currency import format_xaf, format_xaf_with_symbol, parse_xaf
from fastmeuble_server.models import CartItem
from fastmeuble_server.whatsapp import (
    cart_whatsapp_url,
    format_cart_message,
    format_product_message,
    product_whatsapp_url,
    whatsapp_url,
)

NNBSP = "\u202f"


class TestFormatXaf:
    def test_groups_thousands_with_narrow_space(self):
        assert format_xaf(50000) == f"50{NNBSP}000 FCFA"

    def test_without_symbol(self):
        assert format_xaf(1250000, show_symbol=False) == f"1{NNBSP}250{NNBSP}000"

    def test_rounds_to_whole_francs(self):
        assert format_xaf(999.5) == f"1{NNBSP}000 FCFA"
        assert format_xaf(999.4) == "999 FCFA"

    def test_zero_and_small_amounts(self):
        assert format_xaf(0) == "0 FCFA"
        assert format_xaf(750) == "750 FCFA"

    def test_iso_code_variant(self):
        assert format_xaf_with_symbol(50000) == f"50{NNBSP}000 XAF"


class TestParseXaf:
    @pytest.mark.parametrize(
        "text,expected",
        [
            (f"50{NNBSP}000 FCFA", 50000.0),
            ("1 250 000 XAF", 1250000.0),
            ("75,000 F CFA", 75000.0),
            ("12.5 fcfa", 12.5),
            ("free", 0.0),
            ("", 0.0),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_xaf(text) == expected

    def test_formatted_amount_parses_back(self):
        assert parse_xaf(format_xaf(125000)) == 125000


class TestWhatsappMessages:
    def test_empty_cart_message(self):
        assert format_cart_message([]) == "Hello! I would like to place an order."

    def test_cart_message_lists_lines_and_total(self):
        items = [
            CartItem(id="p1", name="Sofa Milano", price=100000, quantity=2),
            CartItem(id="p2", name="Table Oslo", price=50000, quantity=1),
        ]

        message = format_cart_message(items)

        lines = message.split("\n")
        assert lines[0] == "Hello! I would like to place an order for the following items:"
        assert lines[2:7] == [
            "1. Sofa Milano",
            "   Quantity: 2",
            f"   Price: 100{NNBSP}000 FCFA each",
            f"   Subtotal: 200{NNBSP}000 FCFA",
            "",
        ]
        assert f"Total: 250{NNBSP}000 FCFA" in lines
        assert lines[-1] == "Please let me know about availability and delivery options. Thank you!"

    def test_product_message(self):
        message = format_product_message("Sofa Milano", "Salon", 3)

        assert "Product: Sofa Milano\n" in message
        assert "Category: Salon\n" in message
        assert "Quantity: 3\n" in message


class TestWhatsappUrls:
    def test_url_targets_number_and_round_trips_text(self):
        url = whatsapp_url("Bonjour & merci!", "237600000000")

        parsed = urlparse(url)
        assert parsed.netloc == "wa.me"
        assert parsed.path == "/237600000000"
        assert parse_qs(parsed.query)["text"] == ["Bonjour & merci!"]

    def test_encodes_like_encode_uri_component(self):
        url = whatsapp_url("Hi (there)! a/b")

        assert url.endswith("?text=Hi%20(there)!%20a%2Fb")

    def test_default_number(self):
        assert cart_whatsapp_url([]).startswith("https://wa.me/237654366920?text=")

    def test_product_url(self):
        url = product_whatsapp_url("Sofa Milano", "Salon", 2, "237611111111")

        text = parse_qs(urlparse(url).query)["text"][0]
        assert text == format_product_message("Sofa Milano", "Salon", 2)
