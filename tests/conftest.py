"""Shared fixtures: a small synthetic export tree."""

import json
from pathlib import Path
from typing import Any

import pytest

from memory_etl.pipeline import ingest_export

THREAD_REL = "your_activity_across_facebook/messages/inbox/alice_1/message_1.json"
POSTS_REL = "your_activity_across_facebook/posts/your_posts_1.json"
COMMENTS_REL = "your_activity_across_facebook/comments/comments.json"
REACTIONS_REL = "reactions/reactions.json"

THREAD_DATA: dict[str, Any] = {
    "participants": [{"name": "Alice"}, {"name": "Me"}],
    "title": "Alice",
    "messages": [
        {
            "sender_name": "Alice",
            "timestamp_ms": 1700000000000,
            "content": "Hello UNICORN friend",
            "type": "Generic",
            "is_unsent": False,
        },
        {
            "sender_name": "Me",
            "timestamp_ms": 1700000001000,
            "content": "Hi Alice",
            "type": "Generic",
            "reactions": [{"reaction": "❤", "actor": "Alice"}],
        },
        {
            "sender_name": "Alice",
            "timestamp_ms": 1700000002000,
            "photos": [{"uri": "messages/inbox/alice_1/photos/1.jpg", "creation_timestamp": 1700000002}],
            "type": "Generic",
        },
    ],
}

POSTS_DATA: list[dict[str, Any]] = [
    {
        "timestamp": 1690000000,
        "title": "Me updated my status.",
        "data": [{"post": "First post"}],
        "attachments": [{"data": [{"external_context": {"url": "https://example.com"}}]}],
    },
    {"timestamp": 1690000100, "text": "Second post body"},
]

COMMENTS_DATA: dict[str, Any] = {
    "comments": {
        "item": [
            {"timestamp": 1690000200, "author": "Me", "text": "Nice one", "target": "post:42"},
        ]
    }
}

REACTIONS_DATA: list[dict[str, Any]] = [
    {"timestamp": 1690000300, "actor": "Me", "reaction": "LIKE", "target": "post:42"},
]


def write_json(path: Path, data: Any) -> Path:
    """Write JSON to path, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def sample_export(tmp_path: Path) -> Path:
    """Create a small export with one thread, posts, comments and reactions."""
    root = tmp_path / "export"
    write_json(root / THREAD_REL, THREAD_DATA)
    write_json(root / POSTS_REL, POSTS_DATA)
    write_json(root / COMMENTS_REL, COMMENTS_DATA)
    write_json(root / REACTIONS_REL, REACTIONS_DATA)
    write_json(root / "profile_information" / "profile_information.json", {"profile": {"name": "Me"}})
    photo = root / "your_activity_across_facebook/messages/inbox/alice_1/photos/1.jpg"
    photo.parent.mkdir(parents=True, exist_ok=True)
    photo.write_bytes(b"\xff\xd8\xff")
    return root


@pytest.fixture
def built_pack(sample_export: Path, tmp_path: Path) -> Path:
    """Ingest the sample export and return the pack directory."""
    pack_dir = tmp_path / "pack"
    ingest_export(sample_export, pack_dir, log=lambda line: None)
    return pack_dir
