from mysqldiff.utils import quote_ident, safe_name


def test_safe_name() -> None:
    assert safe_name("order items$2025") == "order_items_2025"
    assert safe_name("") == "unnamed"


def test_quote_ident() -> None:
    assert quote_ident("users") == "`users`"
    assert quote_ident("order`s") == "`order``s`"
