from telepoll.telegram import UpdateKind, decode_update, extract_update_id
from telepoll.telegram.api_models import Message
from tests.telegram_fakes import raw_callback, raw_inline, raw_message


def test_decode_message_maps_fields() -> None:
    update = decode_update(raw_message(10, 5, "hi", sender_id=99))

    assert update is not None
    assert update.update_id == 10
    assert update.kind is UpdateKind.MESSAGE
    assert update.chat_id == 5
    assert update.sender_id == 99
    assert update.text == "hi"
    assert isinstance(update.message, Message)
    assert update.callback_query is None
    assert update.raw["update_id"] == 10


def test_decode_callback_query_takes_chat_from_message() -> None:
    update = decode_update(raw_callback(11, 5, data="yes"))

    assert update is not None
    assert update.kind is UpdateKind.CALLBACK_QUERY
    assert update.chat_id == 5
    assert update.callback_query is not None
    assert update.callback_query.data == "yes"
    assert update.message is None
    assert update.text is None


def test_decode_inline_query_has_no_chat() -> None:
    update = decode_update(raw_inline(12))

    assert update is not None
    assert update.kind is UpdateKind.INLINE_QUERY
    assert update.chat_id is None
    assert update.sender_id == 42


def test_decode_caption_used_as_text() -> None:
    raw = raw_message(13, 5, text=None)
    raw["message"]["caption"] = "photo caption"

    update = decode_update(raw)

    assert update is not None
    assert update.text == "photo caption"


def test_decode_edited_message_and_membership_kinds() -> None:
    edited = raw_message(14, 5)
    edited["edited_message"] = edited.pop("message")
    member = {
        "update_id": 15,
        "my_chat_member": {
            "chat": {"id": -100, "type": "supergroup"},
            "from": {"id": 1},
            "date": 0,
        },
    }

    edited_update = decode_update(edited)
    member_update = decode_update(member)

    assert edited_update is not None
    assert edited_update.kind is UpdateKind.EDITED_MESSAGE
    assert edited_update.chat_id == 5
    assert member_update is not None
    assert member_update.kind is UpdateKind.MY_CHAT_MEMBER
    assert member_update.chat_id == -100


def test_decode_unknown_kind_is_kept() -> None:
    update = decode_update({"update_id": 16, "message_reaction": {"chat": {}}})

    assert update is not None
    assert update.kind is UpdateKind.UNKNOWN
    assert update.chat_id is None


def test_decode_invalid_payload_returns_none() -> None:
    assert decode_update({"update_id": "x"}) is None
    assert decode_update({"update_id": 17, "message": {"text": "no chat"}}) is None


def test_extract_update_id() -> None:
    assert extract_update_id({"update_id": 17, "message": {}}) == 17
    assert extract_update_id({"update_id": True}) is None
    assert extract_update_id({"message": {}}) is None
    assert extract_update_id("garbage") is None
