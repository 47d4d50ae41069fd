"""Tests for the on-disk transcript format (response.txt + response.json).

WHY: The transcribe and upload steps run at different times and only
share these two files. A format drift between writer and reader would
silently drop words or text.

HOW: save_transcript() output is read back with load_transcript();
malformed files are written by hand to check the error paths.

RULES:
- All files live under tmp_path
- Every error path raises TranscriptFileError (a ValueError)
"""

from __future__ import annotations

import json

import pytest

from conftest import SAMPLE_TEXT
from lecture_archive.core.ir import Token
from lecture_archive.core.transcript import (
    TranscriptFile,
    TranscriptFileError,
    load_transcript,
    parse_response,
    save_transcript,
)


class TestSaveTranscript:

    def test_writes_both_files(self, tmp_path, sample_response):
        txt_path, json_path = save_transcript(tmp_path, sample_response)
        assert txt_path == tmp_path / "response.txt"
        assert json_path == tmp_path / "response.json"
        assert txt_path.read_text(encoding="utf-8") == SAMPLE_TEXT

    def test_json_has_no_text_key(self, tmp_path, sample_response):
        _, json_path = save_transcript(tmp_path, sample_response)
        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert "text" not in data
        assert data["language_code"] == "rus"
        assert len(data["words"]) == len(sample_response["words"])

    def test_cyrillic_is_not_escaped(self, tmp_path, sample_response):
        _, json_path = save_transcript(tmp_path, sample_response)
        assert "Сегодня" in json_path.read_text(encoding="utf-8")


class TestLoadTranscript:

    def test_reads_back_saved_transcript(self, tmp_path, sample_response):
        save_transcript(tmp_path, sample_response)
        transcript = load_transcript(tmp_path)
        assert isinstance(transcript, TranscriptFile)
        assert transcript.full_text == SAMPLE_TEXT
        assert transcript.language_code == "rus"
        assert transcript.language_probability == pytest.approx(0.99)
        assert transcript.tokens[0] == Token("Сегодня", "word", 0.12, 0.58)
        assert len(transcript.tokens) == 9

    def test_duration_is_last_token_end(self, tmp_path, sample_response):
        save_transcript(tmp_path, sample_response)
        assert load_transcript(tmp_path).duration == pytest.approx(2.10)

    def test_empty_word_list(self, tmp_path):
        save_transcript(tmp_path, {"text": "", "words": []})
        transcript = load_transcript(tmp_path)
        assert transcript.tokens == []
        assert transcript.duration == 0.0
        assert transcript.language_code is None

    def test_camel_case_language_keys(self, tmp_path):
        (tmp_path / "response.txt").write_text("x", encoding="utf-8")
        (tmp_path / "response.json").write_text(
            json.dumps({"languageCode": "ru", "languageProbability": 0.5, "words": []}),
            encoding="utf-8",
        )
        transcript = load_transcript(tmp_path)
        assert transcript.language_code == "ru"
        assert transcript.language_probability == 0.5

    def test_missing_json_file(self, tmp_path):
        (tmp_path / "response.txt").write_text("x", encoding="utf-8")
        with pytest.raises(TranscriptFileError, match="Missing"):
            load_transcript(tmp_path)

    def test_missing_text_file(self, tmp_path):
        (tmp_path / "response.json").write_text('{"words": []}', encoding="utf-8")
        with pytest.raises(TranscriptFileError):
            load_transcript(tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "response.txt").write_text("x", encoding="utf-8")
        (tmp_path / "response.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(TranscriptFileError, match="not valid JSON"):
            load_transcript(tmp_path)


class TestSchemaValidation:

    def test_words_required(self):
        with pytest.raises(TranscriptFileError, match="invalid"):
            parse_response({"language_code": "ru"}, "")

    def test_unknown_token_type(self):
        data = {"words": [{"text": "a", "type": "punctuation", "start": 0, "end": 1}]}
        with pytest.raises(TranscriptFileError):
            parse_response(data, "a")

    def test_non_numeric_time(self):
        data = {"words": [{"text": "a", "type": "word", "start": "0", "end": 1}]}
        with pytest.raises(TranscriptFileError):
            parse_response(data, "a")

    def test_missing_word_field(self):
        data = {"words": [{"text": "a", "type": "word", "start": 0}]}
        with pytest.raises(TranscriptFileError):
            parse_response(data, "a")

    def test_extra_keys_are_allowed(self, sample_words):
        data = {"words": sample_words, "speaker_count": 1}
        assert len(parse_response(data, SAMPLE_TEXT).tokens) == 9

    def test_error_is_value_error(self):
        assert issubclass(TranscriptFileError, ValueError)
