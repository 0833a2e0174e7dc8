"""
Tests for the relaygate gateway core.

Test coverage:
1. Gateway config (validation, environment loading)
2. Blacklist filter (prefix admission)
3. Relay forward dedup cache (expiry, sweep, atomic check-and-set)
4. Cache sweeper thread
5. Health snapshot
"""

import threading
import time
from datetime import timedelta

import pytest


# ===========================================================================
# 1. Gateway Config
# ===========================================================================


class TestGatewayConfig:
    def test_default_config(self):
        from relaygate.gateway.models import GatewayConfig

        config = GatewayConfig()
        config.validate()
        assert config.dedup_window_s == 20 * 60
        assert config.blacklist == ()
        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.trust_forwarded_for is True

    def test_validate_listen_address(self):
        from relaygate.gateway.models import GatewayConfig
        from relaygate.protocol.errors import ConfigError

        with pytest.raises(ConfigError, match="host:port"):
            GatewayConfig(listen_address="localhost").validate()
        with pytest.raises(ConfigError, match="not a number"):
            GatewayConfig(listen_address="localhost:http").validate()

    def test_validate_urls(self):
        from relaygate.gateway.models import GatewayConfig
        from relaygate.protocol.errors import ConfigError

        with pytest.raises(ConfigError, match="relay_url"):
            GatewayConfig(relay_url="relay.example").validate()
        with pytest.raises(ConfigError, match="proxy_url"):
            GatewayConfig(proxy_url="ftp://proxy").validate()

    def test_validate_positive_durations(self):
        from relaygate.gateway.models import GatewayConfig
        from relaygate.protocol.errors import ConfigError

        with pytest.raises(ConfigError, match="dedup_window_s"):
            GatewayConfig(dedup_window_s=0).validate()
        with pytest.raises(ConfigError, match="timeouts"):
            GatewayConfig(processor_timeout_s=-1).validate()

    def test_ipv6_listen_address(self):
        from relaygate.gateway.models import GatewayConfig

        config = GatewayConfig(listen_address="[::1]:8080")
        assert config.host == "::1"
        assert config.port == 8080

    def test_from_env(self):
        from relaygate.gateway.models import GatewayConfig

        env = {
            "RELAYGATE_LISTEN_ADDRESS": "0.0.0.0:18545",
            "RELAYGATE_RELAY_URL": "https://relay.example",
            "RELAYGATE_VERSION": "v1",
            "RELAYGATE_BLACKLIST": "10.0., 127.0.0.2,,",
            "RELAYGATE_PROCESSOR_TIMEOUT_S": "5",
            "RELAYGATE_TRUST_FORWARDED_FOR": "false",
        }
        config = GatewayConfig.from_env(env)
        assert config.port == 18545
        assert config.relay_url == "https://relay.example"
        assert config.version == "v1"
        assert config.blacklist == ("10.0.", "127.0.0.2")
        assert config.processor_timeout_s == 5.0
        assert config.trust_forwarded_for is False

    def test_from_env_overrides_win(self):
        from relaygate.gateway.models import GatewayConfig

        env = {"RELAYGATE_VERSION": "env", "RELAYGATE_PROXY_URL": "http://env:1"}
        config = GatewayConfig.from_env(env, version="flag", proxy_url=None, blacklist=["1.2."])
        assert config.version == "flag"
        assert config.proxy_url == "http://env:1"
        assert config.blacklist == ("1.2.",)

    def test_from_env_bad_number(self):
        from relaygate.gateway.models import GatewayConfig
        from relaygate.protocol.errors import ConfigError

        with pytest.raises(ConfigError, match="SWEEP_INTERVAL_S"):
            GatewayConfig.from_env({"RELAYGATE_SWEEP_INTERVAL_S": "often"})


# ===========================================================================
# 2. Blacklist Filter
# ===========================================================================


class TestBlacklistFilter:
    def test_empty_blacklist_allows_everything(self):
        from relaygate.gateway.blacklist import BlacklistFilter

        bl = BlacklistFilter()
        assert not bl.is_blacklisted("127.0.0.2")
        assert not bl.is_blacklisted("")
        assert bl.evaluate("10.0.0.1").allowed

    def test_prefix_match(self):
        from relaygate.gateway.blacklist import BlacklistFilter

        bl = BlacklistFilter(["127.0.0.2", "10.1."])
        assert bl.is_blacklisted("127.0.0.2")
        assert bl.is_blacklisted("10.1.44.3")
        # Literal prefix, not address aware
        assert bl.is_blacklisted("127.0.0.20")
        assert not bl.is_blacklisted("127.0.0.1")
        assert not bl.is_blacklisted("110.1.0.1")

    def test_not_exact_or_suffix_match(self):
        from relaygate.gateway.blacklist import BlacklistFilter

        bl = BlacklistFilter(["192.168.1.1"])
        assert not bl.is_blacklisted("192.168.1")
        assert not bl.is_blacklisted("x192.168.1.1")

    def test_evaluate_deny(self):
        from relaygate.gateway.blacklist import BlacklistFilter
        from relaygate.protocol.enums import AdmissionDecision

        result = BlacklistFilter(["10."]).evaluate("10.2.3.4")
        assert result.decision == AdmissionDecision.DENY
        assert result.policy_name == "origin_blacklist"
        assert result.metadata["prefix"] == "10."
        assert not result.allowed

    def test_check_raises(self):
        from relaygate.gateway.blacklist import BlacklistFilter
        from relaygate.protocol.errors import AdmissionDeniedError

        bl = BlacklistFilter(["10."])
        bl.check("11.0.0.1")
        with pytest.raises(AdmissionDeniedError, match="origin_blacklist") as exc:
            bl.check("10.0.0.1")
        assert exc.value.details == {"prefix": "10."}

    def test_empty_prefixes_ignored(self):
        from relaygate.gateway.blacklist import BlacklistFilter

        bl = BlacklistFilter(["", "10."])
        assert len(bl) == 1
        assert not bl.is_blacklisted("8.8.8.8")


# ===========================================================================
# 3. Relay Forward Cache
# ===========================================================================


class TestRelayForwardCache:
    def test_mark_and_lookup(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        assert not cache.was_forwarded("0xabc")
        cache.mark_forwarded("0xabc")
        assert cache.was_forwarded("0xabc")
        assert "0xabc" in cache
        assert len(cache) == 1

    def test_window_scenario(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        cache.mark_forwarded("0xabc")

        clock.advance(minutes=19)
        assert cache.was_forwarded("0xabc")

        clock.advance(minutes=2)
        cache.sweep()
        assert not cache.was_forwarded("0xabc")
        assert len(cache) == 0

    def test_expired_entry_hidden_before_sweep(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        cache.mark_forwarded("0xabc")
        clock.advance(minutes=20, seconds=1)
        assert not cache.was_forwarded("0xabc")
        # Still stored until the sweep runs
        assert len(cache) == 1

    def test_sweep_keeps_young_entries(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        cache.mark_forwarded("old")
        clock.advance(minutes=15)
        cache.mark_forwarded("young")
        clock.advance(minutes=6)

        evicted = cache.sweep()
        assert evicted == 1
        assert not cache.was_forwarded("old")
        assert cache.was_forwarded("young")

    def test_sweep_boundary_is_inclusive(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        cache.mark_forwarded("0xabc")
        clock.advance(minutes=20)
        assert cache.sweep() == 0
        assert cache.was_forwarded("0xabc")

    def test_mark_refreshes_timestamp(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        cache.mark_forwarded("0xabc")
        clock.advance(minutes=15)
        cache.mark_forwarded("0xabc")
        clock.advance(minutes=15)
        cache.sweep()
        assert cache.was_forwarded("0xabc")

    def test_custom_window(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(window=timedelta(seconds=30), clock=clock)
        cache.mark_forwarded("0xabc")
        clock.advance(seconds=31)
        assert not cache.was_forwarded("0xabc")

    def test_mark_if_absent(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        assert cache.mark_if_absent("0xabc") is True
        assert cache.mark_if_absent("0xabc") is False

        clock.advance(minutes=21)
        # Expired entries no longer suppress
        assert cache.mark_if_absent("0xabc") is True

    def test_discard(self, clock):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        cache.mark_forwarded("0xabc")
        cache.discard("0xabc")
        cache.discard("never-seen")
        assert not cache.was_forwarded("0xabc")
        assert cache.mark_if_absent("0xabc")

    def test_concurrent_same_hash_single_winner(self):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache()
        n = 64
        barrier = threading.Barrier(n)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            won = cache.mark_if_absent("0xabc")
            with results_lock:
                results.append(won)

        threads = [threading.Thread(target=worker) for _ in range(n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == n
        assert results.count(True) == 1

    def test_concurrent_distinct_keys(self):
        from relaygate.gateway.dedup import RelayForwardCache

        cache = RelayForwardCache()

        def worker(i):
            for j in range(200):
                cache.mark_forwarded(f"0x{i}-{j}")
                cache.sweep()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 8 * 200
        assert all(cache.was_forwarded(f"0x{i}-199") for i in range(8))


# ===========================================================================
# 4. Cache Sweeper
# ===========================================================================


class TestCacheSweeper:
    def test_sweeper_evicts_periodically(self, clock):
        from relaygate.gateway.dedup import CacheSweeper, RelayForwardCache

        cache = RelayForwardCache(clock=clock)
        cache.mark_forwarded("0xabc")
        clock.advance(minutes=30)

        sweeper = CacheSweeper(cache, interval_s=0.01)
        sweeper.start()
        try:
            deadline = time.monotonic() + 2.0
            while len(cache) and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            sweeper.stop()

        assert len(cache) == 0
        assert not sweeper.is_running

    def test_start_is_idempotent(self):
        from relaygate.gateway.dedup import CacheSweeper, RelayForwardCache

        sweeper = CacheSweeper(RelayForwardCache(), interval_s=10)
        sweeper.start()
        sweeper.start()
        assert sweeper.is_running
        sweeper.stop()
        sweeper.stop()
        assert not sweeper.is_running

    def test_invalid_interval(self):
        from relaygate.gateway.dedup import CacheSweeper, RelayForwardCache

        with pytest.raises(ValueError, match="interval_s"):
            CacheSweeper(RelayForwardCache(), interval_s=0)


# ===========================================================================
# 5. Health Snapshot
# ===========================================================================


class TestHealthSnapshot:
    def test_to_dict(self, clock):
        from relaygate.gateway.models import HealthSnapshot

        start = clock()
        now = clock.advance(seconds=5)
        snap = HealthSnapshot(now=now, start_time=start, version="v1")
        assert snap.to_dict() == {
            "time": "2024-01-01T12:00:05Z",
            "startTime": "2024-01-01T12:00:00Z",
            "version": "v1",
        }
