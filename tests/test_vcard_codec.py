from radicale_mcp.domain import Contact
from radicale_mcp.infrastructure import vcard_codec


def test_full_name_falls_back_to_unknown():
    text = vcard_codec.encode_contact(Contact(uid="c1", email="x@example.com"))
    lines = text.split("\r\n")

    assert lines[0] == "BEGIN:VCARD"
    assert lines[1] == "VERSION:3.0"
    assert "FN:Unknown" in lines
    assert "N:;;;;" in lines
    assert lines[-1] == "END:VCARD"


def test_full_name_built_from_parts():
    text = vcard_codec.encode_contact(Contact(uid="c1", first_name="Ada", last_name="Lovelace"))
    lines = text.split("\r\n")

    assert "FN:Ada Lovelace" in lines
    assert "N:Lovelace;Ada;;;" in lines


def test_empty_fields_are_omitted():
    text = vcard_codec.encode_contact(Contact(uid="c1", full_name="Ada"))
    for key in ("EMAIL", "TEL", "ORG", "TITLE", "NOTE"):
        assert f"\r\n{key}:" not in text


def test_decode_unfolds_and_strips_parameters():
    text = (
        "BEGIN:VCARD\r\n"
        "VERSION:3.0\r\n"
        "UID:c1\r\n"
        "FN:Ada Lovelace\r\n"
        "N:Lovelace;Ada;;;\r\n"
        "EMAIL;TYPE=INTERNET:ada@example.com\r\n"
        "TEL;TYPE=CELL:+44 1234\r\n"
        "NOTE:Analytical \r\n"
        " engine\r\n"
        "X-SOCIALPROFILE:ignored\r\n"
        "END:VCARD\r\n"
    )

    contact = vcard_codec.decode_contact(text)

    assert contact == Contact(
        uid="c1",
        full_name="Ada Lovelace",
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        phone="+44 1234",
        note="Analytical engine"
    )


def test_decode_keys_are_case_insensitive():
    contact = vcard_codec.decode_contact("BEGIN:VCARD\nemail:a@b.c\norg:ACME\nEND:VCARD\n")
    assert contact.email == "a@b.c"
    assert contact.org == "ACME"


def test_value_may_contain_colons():
    contact = vcard_codec.decode_contact("BEGIN:VCARD\nNOTE:call at 10:30\nEND:VCARD")
    assert contact.note == "call at 10:30"


def test_round_trip():
    contact = Contact(
        uid="c1", full_name="Grace Hopper", first_name="Grace", last_name="Hopper",
        email="grace@example.com", phone="555", org="Navy", title="Rear Admiral", note="COBOL"
    )
    assert vcard_codec.decode_contact(vcard_codec.encode_contact(contact)) == contact


def test_has_vcard():
    assert vcard_codec.has_vcard("BEGIN:VCARD\r\nFN:x\r\nEND:VCARD")
    assert not vcard_codec.has_vcard("BEGIN:VCALENDAR\r\nEND:VCALENDAR")


def test_multiline_note_round_trips_on_one_line():
    contact = Contact(uid="c1", full_name="Ada", note="line one\nline two")

    text = vcard_codec.encode_contact(contact)

    assert "NOTE:line one\\nline two" in text.split("\r\n")
    assert vcard_codec.decode_contact(text).note == "line one\nline two"


def test_newline_in_value_cannot_inject_properties():
    contact = Contact(uid="c1", email="ada@example.com", note="hi\nEMAIL:attacker@evil.test")

    decoded = vcard_codec.decode_contact(vcard_codec.encode_contact(contact))

    assert decoded.email == "ada@example.com"
    assert decoded.note == "hi\nEMAIL:attacker@evil.test"


def test_separators_in_values_round_trip():
    contact = Contact(
        uid="c1", first_name="Ana, María", last_name="Garcia;Lopez",
        org="Acme, Inc.", title="C:\\Admin"
    )

    text = vcard_codec.encode_contact(contact)
    decoded = vcard_codec.decode_contact(text)

    assert "N:Garcia\\;Lopez;Ana\\, María;;;" in text.split("\r\n")
    assert decoded.last_name == "Garcia;Lopez"
    assert decoded.first_name == "Ana, María"
    assert decoded.org == "Acme, Inc."
    assert decoded.title == "C:\\Admin"


def test_escaped_values_from_other_clients_are_unescaped():
    contact = vcard_codec.decode_contact(
        "BEGIN:VCARD\r\n"
        "ORG:Acme\\, Inc.\r\n"
        "NOTE:a\\nb\\Nc\r\n"
        "N:O\\;Brien;Pat;;;\r\n"
        "END:VCARD\r\n"
    )

    assert contact.org == "Acme, Inc."
    assert contact.note == "a\nb\nc"
    assert contact.last_name == "O;Brien"
    assert contact.first_name == "Pat"
