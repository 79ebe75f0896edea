from sfdash.services.chatter import format_chatter_content


def test_empty_content():
    assert format_chatter_content(None) == ""
    assert format_chatter_content("") == ""


def test_mentions_links_and_line_breaks():
    html = format_chatter_content("Ping @[Jane Doe]\nsee https://example.com/x?a=1")

    assert '<span class="text-blue-600">@Jane Doe</span>' in html
    assert "<br>" in html
    assert '<a href="https://example.com/x?a=1" target="_blank"' in html


def test_markup_is_escaped():
    assert format_chatter_content("<script>x</script>") == "&lt;script&gt;x&lt;/script&gt;"

