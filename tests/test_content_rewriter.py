"""Content rewriting for text-only and vision providers."""

from __future__ import annotations

import asyncio
import base64
import copy
from pathlib import Path

import pytest

from chat_gateway.chat.media import MediaReadError, MediaResolver
from chat_gateway.chat.rewriter import ContentRewriter, gather_in_order


def _image(url: str) -> dict:
    return {"type": "image_url", "image_url": {"url": url}}


def _video(url: str) -> dict:
    return {"type": "video_url", "video_url": {"url": url}}


@pytest.fixture
def rewriter(uploads_dir: Path) -> ContentRewriter:
    return ContentRewriter(MediaResolver(uploads_dir))


@pytest.mark.asyncio
async def test_text_only_conversation_is_unchanged(rewriter: ContentRewriter):
    messages = [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": [{"type": "text", "text": "hi"}]},
    ]

    result = await rewriter.rewrite(messages, has_image=False)

    assert result == messages
    assert result[1] is not messages[1]


@pytest.mark.asyncio
async def test_local_image_is_inlined_for_vision(
    rewriter: ContentRewriter, uploads_dir: Path, tiny_png: bytes
):
    (uploads_dir / "abc.png").write_bytes(tiny_png)
    messages = [{"role": "user", "content": [_image("/uploads/abc.png")]}]

    result = await rewriter.rewrite(messages, has_image=True)

    item = result[0]["content"][0]
    assert item["type"] == "image_url"
    url = item["image_url"]["url"]
    assert url.startswith("data:image/png;base64,")
    assert base64.b64decode(url.split(",", 1)[1]) == tiny_png


@pytest.mark.asyncio
async def test_images_become_placeholders_without_vision(rewriter: ContentRewriter):
    messages = [
        {
            "role": "user",
            "content": [
                _image("/uploads/abc.png"),
                _image("https://cdn.example/remote.png"),
            ],
        }
    ]

    result = await rewriter.rewrite(messages, has_image=False)

    assert result[0]["content"] == [
        {"type": "text", "text": "[User uploaded image: /uploads/abc.png]"},
        {"type": "text", "text": "[User uploaded image: https://cdn.example/remote.png]"},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("has_image", [True, False])
async def test_video_always_becomes_placeholder(
    rewriter: ContentRewriter, has_image: bool
):
    messages = [{"role": "user", "content": [_video("/uploads/clip.mp4")]}]

    result = await rewriter.rewrite(messages, has_image=has_image)

    assert result[0]["content"] == [
        {"type": "text", "text": "[User uploaded video: /uploads/clip.mp4]"}
    ]


@pytest.mark.asyncio
async def test_remote_and_inline_images_pass_through(rewriter: ContentRewriter):
    remote = _image("https://cdn.example/cat.png")
    inline = _image("data:image/gif;base64,R0lGODlh")
    messages = [{"role": "user", "content": [remote, inline]}]

    result = await rewriter.rewrite(messages, has_image=True)

    assert result[0]["content"] == [remote, inline]


@pytest.mark.asyncio
async def test_unknown_parts_pass_through(rewriter: ContentRewriter):
    audio = {"type": "input_audio", "input_audio": {"data": "AAAA", "format": "wav"}}
    messages = [{"role": "user", "content": [audio, "stray"]}]

    result = await rewriter.rewrite(messages, has_image=True)

    assert result[0]["content"] == [audio, "stray"]


@pytest.mark.asyncio
async def test_read_error_becomes_placeholder(uploads_dir: Path):
    class FailingResolver(MediaResolver):
        async def resolve(self, reference):
            raise MediaReadError(reference, "disk on fire")

    rewriter = ContentRewriter(FailingResolver(uploads_dir))
    messages = [{"role": "user", "content": [_image("/uploads/bad.png")]}]

    result = await rewriter.rewrite(messages, has_image=True)

    assert result[0]["content"] == [
        {"type": "text", "text": "[Image read error: /uploads/bad.png]"}
    ]


@pytest.mark.asyncio
async def test_missing_file_defaults_to_placeholder(rewriter: ContentRewriter):
    messages = [{"role": "user", "content": [_image("/uploads/gone.png")]}]

    result = await rewriter.rewrite(messages, has_image=True)

    assert result[0]["content"] == [
        {"type": "text", "text": "[Image not found: /uploads/gone.png]"}
    ]


@pytest.mark.asyncio
async def test_missing_file_passthrough_policy_keeps_original(uploads_dir: Path):
    rewriter = ContentRewriter(
        MediaResolver(uploads_dir), missing_image_policy="passthrough"
    )
    original = _image("/uploads/gone.png")
    messages = [{"role": "user", "content": [original]}]

    result = await rewriter.rewrite(messages, has_image=True)

    assert result[0]["content"] == [original]


@pytest.mark.asyncio
async def test_rewrite_preserves_roles_order_and_does_not_mutate(
    rewriter: ContentRewriter, uploads_dir: Path, tiny_png: bytes
):
    (uploads_dir / "a.png").write_bytes(tiny_png)
    messages = [
        {"role": "system", "content": "sys"},
        {
            "role": "user",
            "name": "alice",
            "content": [
                {"type": "text", "text": "one"},
                _image("/uploads/a.png"),
                _video("/uploads/v.mp4"),
                {"type": "text", "text": "two"},
            ],
        },
        {"role": "assistant", "content": "ok"},
        {"role": "user", "content": [_image("https://cdn.example/b.png")]},
    ]
    snapshot = copy.deepcopy(messages)

    result = await rewriter.rewrite(messages, has_image=True)

    assert messages == snapshot
    assert [m["role"] for m in result] == [m["role"] for m in messages]
    assert result[1]["name"] == "alice"
    assert [len(m["content"]) for m in result if isinstance(m["content"], list)] == [
        4,
        1,
    ]
    kinds = [part["type"] for part in result[1]["content"]]
    assert kinds == ["text", "image_url", "text", "text"]
    assert result[1]["content"][0]["text"] == "one"
    assert result[1]["content"][3]["text"] == "two"


@pytest.mark.asyncio
async def test_gather_in_order_ignores_completion_order():
    async def _slow_echo(value: int) -> int:
        await asyncio.sleep(0.01 * (5 - value))
        return value * 10

    assert await gather_in_order(_slow_echo, [0, 1, 2, 3, 4]) == [0, 10, 20, 30, 40]


@pytest.mark.asyncio
async def test_malformed_local_reference_becomes_read_error(rewriter: ContentRewriter):
    messages = [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "look"},
                _image("/uploads/a%00.png"),
            ],
        }
    ]

    result = await rewriter.rewrite(messages, has_image=True)

    assert result[0]["content"] == [
        {"type": "text", "text": "look"},
        {"type": "text", "text": "[Image read error: /uploads/a%00.png]"},
    ]


@pytest.mark.asyncio
async def test_gather_in_order_cancels_siblings_on_failure():
    cancelled: list[int] = []

    async def _work(value: int) -> int:
        if value == 0:
            await asyncio.sleep(0)
            raise RuntimeError("boom")
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(value)
            raise
        return value

    with pytest.raises(ExceptionGroup) as excinfo:
        await gather_in_order(_work, [0, 1, 2])

    assert excinfo.group_contains(RuntimeError)
    assert sorted(cancelled) == [1, 2]
