from unittest import mock

import pytest
from botocore.exceptions import ClientError

from quiz_audio_tools.errors import StorageError
from quiz_audio_tools.storage import S3Storage, extract_key


def _client_error(op):
    return ClientError({"Error": {"Code": "500", "Message": "boom"}}, op)


def test_put_uploads_public_object():
    fake_client = mock.MagicMock()
    storage = S3Storage("bucket", region="eu-west-3", s3_client=fake_client)

    url = storage.put("audios-bewize/flashcards/questions/q1.mp3", b"mp3", "audio/mpeg")

    fake_client.put_object.assert_called_once_with(
        Bucket="bucket",
        Key="audios-bewize/flashcards/questions/q1.mp3",
        Body=b"mp3",
        ACL="public-read",
        ContentType="audio/mpeg",
    )
    assert url == "https://bucket.s3.eu-west-3.amazonaws.com/audios-bewize/flashcards/questions/q1.mp3"


def test_put_refuses_empty_body():
    fake_client = mock.MagicMock()
    with pytest.raises(StorageError):
        S3Storage("bucket", s3_client=fake_client).put("k", b"", "audio/mpeg")
    fake_client.put_object.assert_not_called()


def test_put_failure_raises_storage_error():
    fake_client = mock.MagicMock()
    fake_client.put_object.side_effect = _client_error("PutObject")
    with pytest.raises(StorageError):
        S3Storage("bucket", s3_client=fake_client).put("k", b"x", "audio/mpeg")


def test_delete():
    fake_client = mock.MagicMock()
    assert S3Storage("bucket", s3_client=fake_client).delete("k") is True
    fake_client.delete_object.assert_called_once_with(Bucket="bucket", Key="k")

    fake_client.delete_object.side_effect = _client_error("DeleteObject")
    with pytest.raises(StorageError, match="S3 delete failed"):
        S3Storage("bucket", s3_client=fake_client).delete("k")


@pytest.mark.parametrize(
    "value,expected",
    [
        ("https://b.s3.eu-west-3.amazonaws.com/audios-bewize/quizzes/feedbacks/f1.mp3", "audios-bewize/quizzes/feedbacks/f1.mp3"),
        ("audios-bewize/flashcards/answers/a1.mp3", "audios-bewize/flashcards/answers/a1.mp3"),
    ],
)
def test_extract_key(value, expected):
    assert extract_key(value) == expected
