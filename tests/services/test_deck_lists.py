import pytest

from services.deck_lists import format_deck_list, parse_deck_list


@pytest.mark.parametrize(
    "line, quantity, name",
    [
        ("4 Lightning Bolt", 4, "Lightning Bolt"),
        ("4x Lightning Bolt", 4, "Lightning Bolt"),
        ("1 Lightning Bolt (M21) 163", 1, "Lightning Bolt"),
        ("Lightning Bolt x4", 4, "Lightning Bolt"),
        ("Lightning Bolt", 1, "Lightning Bolt"),
        ("1 Kinnan, Bonder Prodigy", 1, "Kinnan, Bonder Prodigy"),
    ],
)
def test_parse_line_shapes(line, quantity, name):
    result = parse_deck_list(line)
    assert [(c.name, c.quantity, c.section) for c in result.cards] == [(name, quantity, "main")]
    assert result.errors == []


def test_sections_and_comments():
    text = """
    // my list
    Commander (1)
    1 Kinnan, Bonder Prodigy

    # ramp
    1 Sol Ring
    1 Commander's Sphere
    Sideboard:
    2 Pyroblast
    """
    result = parse_deck_list(text)
    assert [(c.name, c.section) for c in result.cards] == [
        ("Kinnan, Bonder Prodigy", "commander"),
        ("Sol Ring", "main"),
        ("Commander's Sphere", "main"),
        ("Pyroblast", "sideboard"),
    ]
    assert result.total == 5


def test_zero_quantity_is_reported_with_line_number():
    result = parse_deck_list("1 Sol Ring\n0 Island")
    assert [c.name for c in result.cards] == ["Sol Ring"]
    assert result.errors == ['Line 2: Invalid quantity "0"']


def test_size_warnings():
    small = parse_deck_list("4 Island")
    assert small.warnings == ["Deck only has 4 cards (minimum 40 recommended)"]

    large = parse_deck_list("101 Relentless Rats")
    assert large.warnings == ["Deck has 101 cards (maximum 100 for most formats)"]

    assert parse_deck_list("60 Island").warnings == []


def test_to_dict_shape():
    data = parse_deck_list("2 Island").to_dict()
    assert data["cards"] == [{"name": "Island", "quantity": 2, "section": "main"}]
    assert data["total"] == 2


def test_format_groups_sections_and_sorts_main():
    text = format_deck_list(
        [
            ("Sol Ring", 1, "main"),
            ("Pyroblast", 2, "sideboard"),
            ("arcane Signet", 1, "main"),
            ("Kinnan, Bonder Prodigy", 1, "commander"),
        ]
    )
    assert text == (
        "Commander\n1 Kinnan, Bonder Prodigy\n\n"
        "1 arcane Signet\n1 Sol Ring\n\n"
        "Sideboard\n2 Pyroblast\n"
    )


def test_format_empty_list():
    assert format_deck_list([]) == ""


def test_formatted_list_parses_back():
    text = format_deck_list([("Kinnan, Bonder Prodigy", 1, "commander"), ("Sol Ring", 1, "main")])
    parsed = parse_deck_list(text)
    assert [(c.name, c.section) for c in parsed.cards] == [
        ("Kinnan, Bonder Prodigy", "commander"),
        ("Sol Ring", "main"),
    ]


def test_deck_header_closes_commander_block():
    result = parse_deck_list("Commander\n1 Kinnan, Bonder Prodigy\nDeck\n1 Sol Ring")
    assert [c.section for c in result.cards] == ["commander", "main"]
