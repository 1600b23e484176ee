import base64
from email import message_from_bytes, policy

from case_review_service.app.service.mail.compose import MailAttachment, build_mime_message, encode_raw_message


def decode_raw(raw: str):
    return message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)), policy=policy.default)


def test_plain_message_headers_and_body():
    message = build_mime_message("admin@claimy.test", "shop@example.com", "Claim", "Hello shop")

    assert message["From"] == "admin@claimy.test"
    assert message["To"] == "shop@example.com"
    assert message["Subject"] == "Claim"
    assert message["In-Reply-To"] is None
    assert message.get_content().strip() == "Hello shop"


def test_reply_headers_extend_references():
    message = build_mime_message(
        "admin@claimy.test", "shop@example.com", "Re: Claim", "Thanks",
        in_reply_to="<m2@example.com>", references="<m1@example.com>",
    )
    assert message["In-Reply-To"] == "<m2@example.com>"
    assert message["References"] == "<m1@example.com> <m2@example.com>"


def test_reply_headers_without_prior_references():
    message = build_mime_message("a@x.test", "b@x.test", "Re: x", "y", in_reply_to="<m1@x.test>")
    assert message["References"] == "<m1@x.test>"


def test_attachments_are_encoded_into_raw_message():
    attachments = [
        MailAttachment(filename="product.jpg", mime_type="image/jpeg", data=b"\xff\xd8jpeg"),
        MailAttachment(filename="blob", mime_type="unknown", data=b"raw"),
    ]
    message = build_mime_message("a@x.test", "b@x.test", "Files", "See attached", attachments=attachments)

    raw = encode_raw_message(message)
    assert "=" not in raw

    parsed = decode_raw(raw)
    files = {part.get_filename(): part for part in parsed.iter_attachments()}
    assert files["product.jpg"].get_content_type() == "image/jpeg"
    assert files["product.jpg"].get_content() == b"\xff\xd8jpeg"
    assert files["blob"].get_content_type() == "application/octet-stream"
