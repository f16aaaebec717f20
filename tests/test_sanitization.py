import pytest

from clubhouse.utils.sanitization import sanitize_label, sanitize_text


def test_text_is_escaped_and_stripped():
    assert sanitize_text("  <i>Frost</i>\x07 delay ") == "&lt;i&gt;Frost&lt;/i&gt; delay"
    assert sanitize_text("   ") is None
    assert sanitize_text(None) is None


def test_text_over_the_limit_is_rejected():
    with pytest.raises(ValueError):
        sanitize_text("x" * 2001)


def test_label_collapses_whitespace():
    assert sanitize_label("  Visiting \t  Pro ") == "Visiting Pro"


def test_label_limit_applies_after_escaping():
    # 100 characters raw, 104 once "&" becomes "&amp;"
    name = "Smith & Sons " + "x" * 87
    assert len(name) == 100

    with pytest.raises(ValueError):
        sanitize_label(name)
    assert len(sanitize_label("Smith & Sons")) == len("Smith &amp; Sons")
