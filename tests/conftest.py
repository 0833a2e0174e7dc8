from datetime import datetime, timedelta, timezone

import pytest


T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable time source; call it to read, advance() to move."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeForwarder:
    """Stands in for RelayForwarder; records calls, never touches the network."""

    def __init__(self, proxy_status=200, relay_status=200, relay_error=None, proxy_error=None):
        from relaygate.processor.forwarder import ForwardResponse

        self._response = ForwardResponse
        self.proxy_status = proxy_status
        self.relay_status = relay_status
        self.relay_error = relay_error
        self.proxy_error = proxy_error
        self.proxy_calls = []
        self.relay_calls = []
        self.closed = False

    def forward_to_proxy(self, url, body):
        self.proxy_calls.append((url, body))
        if self.proxy_error is not None:
            raise self.proxy_error
        return self._response(status=self.proxy_status, body=b'{"jsonrpc":"2.0","id":1,"result":"0x1"}')

    def forward_to_relay(self, url, payload, signer):
        self.relay_calls.append((url, payload, signer))
        if self.relay_error is not None:
            raise self.relay_error
        return self._response(status=self.relay_status, body=b'{"jsonrpc":"2.0","id":1,"result":"ok"}')

    def close(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signer():
    from relaygate.security.signing import RelaySigner

    return RelaySigner.generate()


@pytest.fixture
def fake_forwarder():
    return FakeForwarder()


@pytest.fixture
def make_forwarder():
    return FakeForwarder
