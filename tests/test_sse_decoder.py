import json

import pytest

from api.sse import SSEDecoder, extract_delta_content, iter_sse_content


def frame(content: str) -> bytes:
    return ("data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n").encode()


def decode_all(chunks: list[bytes]) -> str:
    decoder = SSEDecoder()
    out = []
    for chunk in chunks:
        out.extend(decoder.feed(chunk))
    return "".join(out)


def test_extract_delta_content_shapes():
    assert extract_delta_content({"choices": [{"delta": {"content": "hi"}}]}) == "hi"
    assert extract_delta_content({"choices": [{"delta": {"content": ""}}]}) is None
    assert extract_delta_content({"choices": [{"delta": {}}]}) is None
    assert extract_delta_content({"choices": []}) is None
    assert extract_delta_content({"choices": [{"delta": {"content": 5}}]}) is None
    assert extract_delta_content([1, 2]) is None


def test_single_chunk_stream():
    body = frame("Hello") + frame(", world") + b"data: [DONE]\n"
    assert decode_all([body]) == "Hello, world"


def test_line_split_across_reads_matches_contiguous():
    body = frame("Zero") + frame("DB")
    split_at = len(frame("Zero")) + 10  # inside the second data line
    assert decode_all([body[:split_at], body[split_at:]]) == decode_all([body]) == "ZeroDB"


def test_multibyte_character_split_across_reads():
    body = frame("café ✓")
    marker = body.index("✓".encode("utf-8"))
    # cut in the middle of the three-byte check mark
    chunks = [body[: marker + 1], body[marker + 1 :]]
    assert decode_all(chunks) == decode_all([body]) == "café ✓"


def test_byte_by_byte_feed():
    body = frame("こんにちは") + frame("!")
    chunks = [body[i : i + 1] for i in range(len(body))]
    assert decode_all(chunks) == "こんにちは!"


def test_malformed_frame_is_skipped():
    decoder = SSEDecoder()
    body = b"data: {invalid json}\n" + b'data: {"choices":[{"delta":{"content":"hi"}}]}\n'
    assert decoder.feed(body) == ["hi"]
    assert decoder.skipped_frames == 1


def test_non_data_and_blank_lines_are_ignored():
    body = b": keep-alive\n\nevent: message\nid: 7\n" + frame("ok") + b"\r\n"
    assert decode_all([body]) == "ok"


def test_crlf_line_endings():
    body = frame("a").replace(b"\n", b"\r\n") + frame("b").replace(b"\n", b"\r\n")
    assert decode_all([body]) == "ab"


def test_incomplete_line_is_held_back():
    decoder = SSEDecoder()
    body = frame("held")
    assert decoder.feed(body[:-1]) == []
    assert decoder.pending == body[:-1].decode()
    assert decoder.feed(b"\n") == ["held"]
    assert decoder.pending == ""


def test_done_sentinel_emits_nothing():
    assert decode_all([b"data: [DONE]\n"]) == ""


async def _aiter(chunks):
    for chunk in chunks:
        yield chunk


@pytest.mark.asyncio
async def test_iter_sse_content_preserves_order():
    chunks = [frame("one "), frame("two ")[:7], frame("two ")[7:] + frame("three")]
    out = [c async for c in iter_sse_content(_aiter(chunks))]
    assert out == ["one ", "two ", "three"]


@pytest.mark.asyncio
async def test_iter_sse_content_drops_unterminated_tail():
    chunks = [frame("kept"), frame("lost")[:-1]]
    out = [c async for c in iter_sse_content(_aiter(chunks))]
    assert out == ["kept"]


@pytest.mark.asyncio
async def test_iter_sse_content_empty_stream():
    assert [c async for c in iter_sse_content(_aiter([]))] == []
