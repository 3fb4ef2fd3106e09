"""Tests for the HTML formatter."""

import pytest

from iafront_client.markdown_formatter import (
    DEFAULT_HIGHLIGHT_THEME,
    format_block,
    format_inline,
    format_message,
)
from iafront_client.markdown_models import CodeBlock, Divider, HighlightKind


def test_empty_message():
    """Test that empty input gives an empty string."""
    assert format_message("") == ""
    assert format_message("\n\n") == ""


def test_html_is_escaped():
    """Test that raw HTML in text is escaped."""
    out = format_message("<script>alert(1)</script> & more")
    assert "<script>" not in out
    assert "&lt;script&gt;" in out
    assert "&amp; more" in out


def test_inline_styles():
    """Test bold, italic and inline code tags."""
    out = format_inline("**b** *i* `c`")
    assert "<b>b</b>" in out
    assert "<i>i</i>" in out
    assert "<code" in out and ">c</code>" in out


def test_link_anchor():
    """Test markdown links become anchors with the target URL."""
    out = format_inline("open [site](https://example.com/?a=1&b=2)")
    assert '<a href="https://example.com/?a=1&amp;b=2"' in out
    assert ">site</a>" in out


def test_bare_url_anchor_drops_trailing_period():
    """Test the trailing period is left out of the anchor and the text."""
    out = format_inline("go http://x.org.")
    assert out.endswith("http://x.org</a>")


def test_paragraph_newlines():
    """Test line breaks inside a paragraph."""
    out = format_message("one\ntwo")
    assert "one<br>two" in out


def test_heading_sizes():
    """Test heading levels map to font sizes."""
    assert "font-size:20px" in format_message("# A")
    assert "font-size:15px" in format_message("##### E")


def test_list_prefixes():
    """Test bullet, check and numbered prefixes."""
    out = format_message("- a\n- [x] b\n- [ ] c\n7. d")
    assert "• a" in out
    assert "☑ b" in out
    assert "☐ c" in out
    assert "7. d" in out


def test_table_html():
    """Test table alignment and header styling."""
    out = format_message("| A | B | C |\n|:--|:-:|--:|\n| 1 | **2** | 3 |")
    assert out.startswith("<table")
    assert out.count("<tr>") == 2
    assert "font-weight:bold" in out
    assert "text-align:left;\">A</td>" in out
    assert "text-align:center;\"><b>2</b></td>" in out
    assert "text-align:right;\">3</td>" in out


def test_code_block_highlighting():
    """Test code spans are wrapped with theme styles."""
    out = format_message("```kotlin\nval s = \"x\"\n```")
    keyword_style = DEFAULT_HIGHLIGHT_THEME[HighlightKind.KEYWORD]
    string_style = DEFAULT_HIGHLIGHT_THEME[HighlightKind.STRING]
    assert f'<span style="{keyword_style}">val</span>' in out
    assert f'<span style="{string_style}">"x"</span>' in out
    assert ">kotlin</div>" in out


def test_code_block_is_escaped_and_untouched_by_inline_rules():
    """Test code text is not parsed for inline markup."""
    out = format_block(CodeBlock(language="", text="a **b** <c>"))
    assert "a **b** &lt;c&gt;" in out
    assert "<b>" not in out


def test_later_span_wins_in_html():
    """Test that a string span overrides a keyword inside it."""
    theme = {HighlightKind.KEYWORD: "K", HighlightKind.STRING: "S"}
    out = format_block(CodeBlock(language="python", text='"if"'), theme)
    assert '<span style="S">"if"</span>' in out
    assert '"K"' not in out


def test_custom_theme_without_kind_leaves_text_plain():
    """Test a theme missing a category."""
    out = format_message("```py\nreturn 1\n```", theme={})
    assert "<span" not in out
    assert "return 1" in out


def test_divider():
    """Test the horizontal rule."""
    assert format_block(Divider()).startswith("<hr")


def test_unknown_block_type():
    """Test that a foreign object is rejected."""
    with pytest.raises(TypeError):
        format_block(object())
