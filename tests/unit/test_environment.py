"""Tests for ReplEnvironment."""

import json
import os

import pytest
from packaging.version import Version

from solrepl.config import ReplConfig
from solrepl.environment import ReplEnvironment
from solrepl.errors import (
    CacheEmptyError,
    CacheIdAlreadySetError,
    FragmentParseError,
    ParseError,
    VersionError,
)
from solrepl.parser import PartKind, SourceUnit, SourceUnitPart
from solrepl.session_cache import SessionCache
from solrepl.snippet import SnippetCategory


class RecordingParser:
    """Parser stub that treats every non-empty text as one variable declaration."""

    def __init__(self):
        self.calls = []

    def parse(self, source, solc_version=None):
        self.calls.append((source, solc_version))
        if not source.strip():
            raise ParseError("empty")
        return SourceUnit(parts=(SourceUnitPart(PartKind.VARIABLE, 0, len(source)),))


@pytest.fixture
def cache(tmp_path):
    return SessionCache(tmp_path / "cache")


@pytest.fixture
def env(cache):
    return ReplEnvironment("0.8.17", cache=cache)


class TestCreation:
    """Environment construction and version handling."""

    def test_new_environment_is_empty(self, env):
        assert env.session == ()
        assert len(env) == 0
        assert env.cache_id is None
        assert env.solc_version == Version("0.8.17")

    def test_accepts_version_object(self, cache):
        env = ReplEnvironment(Version("0.7.6"), cache=cache)
        assert str(env.solc_version) == "0.7.6"

    @pytest.mark.parametrize("bad", ["0.8", "latest", "v0.8.17", "0.8.17.1", "", "0.08.1"])
    def test_malformed_version_aborts(self, cache, bad):
        with pytest.raises(VersionError):
            ReplEnvironment(bad, cache=cache)

    def test_default_version_from_config(self, cache):
        config = ReplConfig(solc_version="0.8.21")
        env = ReplEnvironment(cache=cache, config=config)
        assert env.solc_version == Version("0.8.21")

    def test_default_version_from_toolchain(self, cache, monkeypatch):
        monkeypatch.setattr("solrepl.toolchain.get_solc_version", lambda with_commit_hash=False: Version("0.8.9"))
        env = ReplEnvironment(cache=cache, config=ReplConfig())
        assert env.solc_version == Version("0.8.9")

    def test_cache_built_from_config(self, tmp_path):
        config = ReplConfig(cache_dir=str(tmp_path / "from-config"), snapshot_prefix="s")
        env = ReplEnvironment("0.8.17", config=config)

        assert env.cache.cache_dir == tmp_path / "from-config"
        assert env.cache.prefix == "s"


class TestSubmit:
    """Fragment ingestion."""

    def test_submit_appends(self, env):
        snippet = env.submit("uint256 x;")

        assert env.session == (snippet,)
        assert snippet.raw == "uint256 x;"
        assert snippet.category is SnippetCategory.FALLBACK

    def test_submit_preserves_order(self, env):
        env.submit_all(["event A();", "uint b;", "function c() {}"])
        assert [s.raw for s in env.session] == ["event A();", "uint b;", "function c() {}"]

    def test_rejected_fragment_leaves_session_unchanged(self, env):
        env.submit("uint a;")

        with pytest.raises(FragmentParseError) as exc_info:
            env.submit("uint b = (;")

        assert [s.raw for s in env.session] == ["uint a;"]
        assert exc_info.value.source == "uint b = (;"
        assert isinstance(exc_info.value.cause, ParseError)

    def test_session_is_read_only(self, env):
        env.submit("uint a;")
        with pytest.raises(AttributeError):
            env.session.append("uint b;")

    def test_parser_receives_version_hint(self, cache):
        parser = RecordingParser()
        env = ReplEnvironment("0.8.17", parser=parser, cache=cache)

        env.submit("anything goes")

        assert parser.calls == [("anything goes", Version("0.8.17"))]

    def test_injected_parser_failure(self, cache):
        env = ReplEnvironment("0.8.17", parser=RecordingParser(), cache=cache)
        with pytest.raises(FragmentParseError):
            env.submit("   ")
        assert len(env) == 0


class TestRender:
    """contract_source delegates to synthesis."""

    def test_example_scenario(self, env):
        env.submit("pragma solidity 0.8.17;")
        env.submit("uint256 x;")
        env.submit("function f() {}")

        source = env.contract_source()

        assert "pragma solidity 0.8.17;" in source
        assert "import" not in source.split("// Imports", 1)[1].split("///", 1)[0]
        body = source.split("contract REPL {", 1)[1].split("fallback() external {", 1)[0]
        fallback = source.split("fallback() external {", 1)[1]
        assert body.strip() == "function f() {}"
        assert fallback.split("}", 1)[0].strip() == "uint256 x;"

    def test_default_pragma_uses_environment_version(self, cache):
        env = ReplEnvironment("0.6.12", cache=cache)
        env.submit("uint a;")
        assert "pragma solidity 0.6.12;" in env.contract_source()

    def test_render_is_deterministic(self, env):
        env.submit_all(['import "x.sol";', "struct S { uint a; }", "uint b;"])
        assert env.contract_source() == env.contract_source()


class TestCacheId:
    """One-shot cache id assignment."""

    def test_assign_once(self, env):
        env.assign_cache_id(4)
        assert env.cache_id == 4

        with pytest.raises(CacheIdAlreadySetError):
            env.assign_cache_id(5)
        assert env.cache_id == 4


class TestPersistRestore:
    """Persisting and restoring whole environments."""

    def test_persist_assigns_id_and_reuses_it(self, env, cache):
        env.submit("uint a;")
        first = env.persist()
        env.submit("uint b;")
        second = env.persist()

        assert env.cache_id == 0
        assert first == second == cache.session_path(0)
        assert len(json.loads(second.read_text())["session"]) == 2

    def test_restore_by_name(self, env, cache):
        sources = ["pragma solidity 0.8.17;", "uint256 x;", "function f() {}"]
        env.submit_all(sources)
        path = env.persist()

        restored = ReplEnvironment.restore(path.name, cache=cache)

        assert [s.raw for s in restored.session] == sources
        assert [s.category for s in restored.session] == [s.category for s in env.session]
        assert restored.solc_version == env.solc_version
        assert restored.cache_id == env.cache_id
        assert restored.contract_source() == env.contract_source()

    def test_restored_environment_keeps_writing_same_file(self, env, cache):
        env.submit("uint a;")
        env.persist()

        restored = ReplEnvironment.restore(0, cache=cache)
        restored.submit("uint b;")
        path = restored.persist()

        assert path == cache.session_path(0)
        assert [s.raw for s in ReplEnvironment.restore(0, cache=cache).session] == ["uint a;", "uint b;"]

    def test_restore_latest(self, cache):
        older = ReplEnvironment("0.8.17", cache=cache)
        older.submit("uint older;")
        older_path = older.persist()

        newer = ReplEnvironment("0.8.17", cache=cache)
        newer.submit("uint newer;")
        newer_path = newer.persist()

        os.utime(older_path, (100, 100))
        os.utime(newer_path, (200, 200))

        restored = ReplEnvironment.restore_latest(cache=cache)
        assert [s.raw for s in restored.session] == ["uint newer;"]
        assert restored.cache_id == 1

    def test_restore_latest_empty(self, cache):
        with pytest.raises(CacheEmptyError):
            ReplEnvironment.restore_latest(cache=cache)

    def test_restore_uses_injected_parser(self, env, cache):
        env.submit("uint a;")
        env.persist()

        parser = RecordingParser()
        restored = ReplEnvironment.restore(0, cache=cache, parser=parser)

        assert restored.parser is parser
        assert parser.calls == [("uint a;", Version("0.8.17"))]

    def test_repr(self, env):
        env.submit("uint a;")
        assert repr(env) == "ReplEnvironment(solc_version=0.8.17, snippets=1, cache_id=None)"
