from __future__ import annotations

from govbid.modules.summaries.renderer import (
    BulletList,
    FieldSequence,
    ItemSequence,
    Leaf,
    humanize_key,
    partition_summary,
    render,
    render_summary,
)


def test_scalars_render_to_leaves():
    assert render(None) == Leaf("na", "N/A")
    assert render("https://sam.gov/x") == Leaf("link", "https://sam.gov/x")
    assert render("line1\nline2") == Leaf("preformatted", "line1\nline2")
    assert render("plain") == Leaf("text", "plain")
    assert render(42) == Leaf("text", "42")
    assert render(2.5) == Leaf("text", "2.5")
    assert render(3.0) == Leaf("text", "3")
    assert render(True) == Leaf("text", "true")
    assert render(False) == Leaf("text", "false")


def test_empty_containers_have_placeholders():
    assert render([]) == Leaf("none", "None")
    assert render({}) == Leaf("empty", "Empty")


def test_list_of_strings_and_numbers_is_a_bullet_list():
    node = render(["a", 1, "https://x.test"])
    assert isinstance(node, BulletList)
    assert [i.text for i in node.items] == ["a", "1", "https://x.test"]


def test_mixed_list_is_numbered_items_with_nested_depth():
    node = render([{"name": "Acme"}, None, True], depth=1)
    assert isinstance(node, ItemSequence)
    assert node.depth == 1
    assert [i.label for i in node.items] == ["Item 1", "Item 2", "Item 3"]
    first = node.items[0].body
    assert isinstance(first, FieldSequence)
    assert first.depth == 2
    assert node.items[1].body == Leaf("na", "N/A")
    assert node.items[2].body == Leaf("text", "true")


def test_mapping_keeps_key_order_and_humanizes_titles():
    node = render({"source_the_product": "x", "originalClosingDate": None})
    assert isinstance(node, FieldSequence)
    assert [(f.key, f.title) for f in node.fields] == [
        ("source_the_product", "Source The Product"),
        ("originalClosingDate", "Original Closing Date"),
    ]


def test_humanize_key():
    assert humanize_key("extract_all_key_contract_data") == "Extract All Key Contract Data"
    assert humanize_key("naicsCode") == "Naics Code"
    assert humanize_key("already Nice") == "Already Nice"


def test_partition_and_render_summary():
    doc = {
        "title": "Boots",
        "id": "abc123",
        "agency": "N/A",
        "originalOpportunityLink": None,
        "originalClosingDate": None,
        "final_recommendations_and_next_steps": ["Bid", "Find suppliers"],
        "extract_all_key_contract_data": {"naics": 316210, "setAside": None},
    }
    meta, sections = partition_summary(doc)
    assert set(meta) == {"title", "id", "agency", "originalOpportunityLink", "originalClosingDate"}
    assert list(sections) == ["final_recommendations_and_next_steps", "extract_all_key_contract_data"]

    out = render_summary(doc)
    assert out["meta"]["title"] == "Boots"
    assert [s["title"] for s in out["sections"]] == [
        "Final Recommendations And Next Steps",
        "Extract All Key Contract Data",
    ]
    assert out["sections"][0]["body"] == {
        "kind": "bullets",
        "items": [{"kind": "text", "text": "Bid"}, {"kind": "text", "text": "Find suppliers"}],
    }
    fields = out["sections"][1]["body"]["fields"]
    assert fields[0]["body"] == {"kind": "text", "text": "316210"}
    assert fields[1]["body"] == {"kind": "na", "text": "N/A"}
