from __future__ import annotations

import email
from email import policy
from urllib.parse import unquote

import pytest

from cypherpunk.errors import UnsupportedFormat
from cypherpunk.onion import Message, OnionBuilder
from cypherpunk.onion.multiplex import RoutingResult
from cypherpunk.packet import OutputFormat, format_result, output_filename, parse_native
from cypherpunk.remailer import resolve

from fakes import FirstChoice


@pytest.fixture
def result(scenario_directory, backend) -> RoutingResult:
    chain = resolve(["paranoia", "dizum"], scenario_directory, FirstChoice())
    message = Message(recipient="alice@example.org", headers={"Subject": "x"}, body=b"hi\n")
    payload = OnionBuilder(backend).encrypt_chain(chain, message)
    return RoutingResult(index=2, chain=chain, payload=payload)


def test_native_has_two_section_blocks(result) -> None:
    text = format_result(result, "native")
    assert text.startswith(
        "::\nAnon-To: paranoia@remailer.example\n\n::\nEncrypted: FAKE\n\n-----BEGIN FAKE-----\n"
    )


def test_native_round_trip(result) -> None:
    envelope = parse_native(format_result(result, OutputFormat.NATIVE))
    assert envelope == result.payload
    assert envelope.body == result.payload.body


def test_mailto_escapes_block(result) -> None:
    text = format_result(result, "mailto")
    prefix = "mailto:paranoia@remailer.example?body="
    assert text.startswith(prefix)

    escaped = text[len(prefix):]
    for char in "\n :/?&=#":
        assert char not in escaped
    assert unquote(escaped).encode("ascii") == result.payload.body


def test_eml_wraps_same_block(result) -> None:
    text = format_result(result, "EML")
    parsed = email.message_from_string(text, policy=policy.default)

    assert parsed["To"] == "paranoia@remailer.example"
    assert parsed["Date"]
    assert parsed["Message-ID"].endswith("@cypherpunk.invalid>")
    assert parsed.get_content_type() == "text/plain"
    assert parsed["Content-Transfer-Encoding"] == "7bit"
    assert parsed.get_content().encode("ascii") == result.payload.body


def test_all_formats_carry_identical_block(result) -> None:
    block = result.payload.body.decode("ascii")
    native = format_result(result, "native")
    mailto = format_result(result, "mailto")
    eml = email.message_from_string(format_result(result, "eml"), policy=policy.default)

    assert native.endswith(block)
    assert unquote(mailto.split("?body=", 1)[1]) == block
    assert eml.get_content() == block


@pytest.mark.parametrize("kind", ["pdf", "", "raw"])
def test_unsupported_format(result, kind) -> None:
    with pytest.raises(UnsupportedFormat) as info:
        format_result(result, kind)
    assert info.value.kind == kind


def test_output_filename(result) -> None:
    assert output_filename(result, "native") == "copy-03.txt"
    assert output_filename(result, "mailto") == "copy-03.url"
    assert output_filename(result, OutputFormat.EML) == "copy-03.eml"
