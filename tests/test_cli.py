import asyncio
import json
import signal

import pytest

import story_weaver_cli


def _base_args(tmp_path):
    return [
        "--engine",
        "mock",
        "--prompt",
        "a lighthouse keeper finds a message in a bottle",
        "--num-chunks",
        "2",
        "--target-chars",
        "200",
        "--output",
        str(tmp_path / "story.txt"),
        "--metadata-output",
        str(tmp_path / "metadata.json"),
    ]


def test_main_writes_story_and_metadata(tmp_path):
    assert story_weaver_cli.main(_base_args(tmp_path)) == 0

    story = (tmp_path / "story.txt").read_text(encoding="utf-8")
    assert len(story) == 200
    assert story.startswith("Part 1 begins")

    metadata = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["text_engine"] == "MockTextEngine"
    assert metadata["speech_engine"] is None
    assert [segment["chars"] for segment in metadata["segments"]] == [100, 100]
    assert metadata["details"]["synopsis"]
    assert metadata["status"] == "Story generation complete!"
    assert metadata["config"]["chars_per_chunk"] == 100


def test_main_narrates_segments(tmp_path):
    args = _base_args(tmp_path) + [
        "--narrate",
        "--audio-dir",
        str(tmp_path / "audio"),
        "--merge-audio",
        "--merge-output",
        str(tmp_path / "story.wav"),
    ]

    assert story_weaver_cli.main(args) == 0

    assert (tmp_path / "audio" / "segment-001.wav").exists()
    assert (tmp_path / "audio" / "segment-002.wav").exists()
    assert (tmp_path / "story.wav").exists()

    metadata = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["speech_engine"] == "MockSpeechEngine"
    assert [entry["index"] for entry in metadata["audio"]] == [0, 1]
    assert metadata["merged_audio"] == str(tmp_path / "story.wav")


def test_main_reads_premise_file(tmp_path):
    premise_file = tmp_path / "premise.txt"
    premise_file.write_text("a clockmaker's last commission\n", encoding="utf-8")
    args = _base_args(tmp_path)
    index = args.index("--prompt")
    args[index : index + 2] = ["--prompt-file", str(premise_file)]

    assert story_weaver_cli.main(args) == 0

    metadata = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["premise"] == "a clockmaker's last commission"


def test_main_rejects_unknown_engine(tmp_path):
    args = _base_args(tmp_path)
    args[1] = "bogus"

    with pytest.raises(ValueError):
        story_weaver_cli.main(args)


def test_google_engine_requires_api_key(tmp_path, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_GENAI_API_KEY", raising=False)
    args = story_weaver_cli.parse_args(["--prompt", "x", "--engine", "gemini"])

    with pytest.raises(ValueError):
        story_weaver_cli.create_text_engine(args)


def test_stop_handler_is_removed_after_generation(tmp_path):
    args = story_weaver_cli.parse_args(_base_args(tmp_path))

    async def scenario():
        code = await story_weaver_cli.run(args, "a lighthouse keeper finds a message in a bottle")
        return code, asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    code, handler_was_left = asyncio.run(scenario())

    assert code == 0
    assert handler_was_left is False


def test_details_language_reaches_metadata(tmp_path):
    args = _base_args(tmp_path) + ["--details-language", "Bahasa Indonesia"]

    assert story_weaver_cli.main(args) == 0

    metadata = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["config"]["details_language"] == "Bahasa Indonesia"
