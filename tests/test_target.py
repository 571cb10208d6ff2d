"""Reference parse target and target loading."""

from __future__ import annotations

import random

import pytest

from sqlfuzz.errors import StartupError, TargetLoadError
from sqlfuzz.model import QuerySynthesizer, TokenCorpusModel
from sqlfuzz.target import DEFAULT_TARGET, load_target, reference_parse


class TestReferenceParse:
    @pytest.mark.parametrize(
        "query",
        [
            "SELECT a FROM t",
            "SELECT a FROM t;",
            "select count(*) from page where page_id in (1, 2)",
            "INSERT INTO t (a, b) VALUES ('x', 2)",
            "SHOW TABLES",
            "UPDATE t SET a = a + 1 WHERE b = ?",
        ],
    )
    def test_accepts(self, query: str) -> None:
        assert reference_parse(query)

    @pytest.mark.parametrize(
        "query",
        [
            "",
            "   ",
            ";",
            "FROM t SELECT a",
            "SELECT (a FROM t",
            "SELECT a) FROM (t",
            "SELECT a; DELETE FROM t",
            "SELECT {a}",
            "a = 1",
        ],
    )
    def test_rejects(self, query: str) -> None:
        assert not reference_parse(query)

    def test_synthesized_queries_never_raise(self, sample_model: TokenCorpusModel) -> None:
        synthesizer = QuerySynthesizer(sample_model, exploration_rate=0.3)
        rng = random.Random(1234)
        for query in synthesizer.generate_batch(rng, 200):
            assert reference_parse(query) in (True, False)


class TestLoadTarget:
    def test_default(self) -> None:
        assert load_target(DEFAULT_TARGET) is reference_parse

    def test_helper_target(self) -> None:
        from tests.helpers import targets

        assert load_target("tests.helpers.targets:accept_all") is targets.accept_all

    def test_dotted_attribute(self) -> None:
        parse = load_target("sqlfuzz.lexing:SqlScanner.tokenize")
        assert callable(parse)

    @pytest.mark.parametrize(
        ("spec", "message"),
        [
            ("sqlfuzz.target", "module:callable"),
            (":reference_parse", "module:callable"),
            ("sqlfuzz.target:", "module:callable"),
            ("sqlfuzz.no_such_module:parse", "Cannot import"),
            ("sqlfuzz.target:no_such_parse", "no attribute"),
            ("tests.helpers.targets:NOT_CALLABLE", "not callable"),
        ],
    )
    def test_errors(self, spec: str, message: str) -> None:
        with pytest.raises(TargetLoadError, match=message):
            load_target(spec)

    def test_load_error_is_fatal(self) -> None:
        assert issubclass(TargetLoadError, StartupError)
