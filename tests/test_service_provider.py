"""
Tests for the service provider.
"""

import pytest

from varnishkit.core.exceptions import ServiceControlError
from varnishkit.graph import Resource
from varnishkit.providers import ServiceProvider

from conftest import FakeRunner


@pytest.fixture
def running_runner() -> FakeRunner:
    return FakeRunner({"service varnish status": 0})


@pytest.fixture
def stopped_runner() -> FakeRunner:
    return FakeRunner({"service varnish status": 3})


class TestQuery:
    """Tests for status detection."""

    def test_running(self, running_runner):
        provider = ServiceProvider(running_runner)
        resource = Resource.service("varnish")

        observed = provider.query(resource)

        assert observed.get("running") is True
        assert provider.insync(resource, observed)
        assert running_runner.calls == ["service varnish status"]

    def test_stopped_service_declared_running(self, stopped_runner):
        provider = ServiceProvider(stopped_runner)
        resource = Resource.service("varnish")

        assert not provider.insync(resource, provider.query(resource))

    def test_stopped_service_declared_stopped(self, stopped_runner):
        provider = ServiceProvider(stopped_runner)
        resource = Resource.service("varnish", ensure="stopped")

        assert provider.insync(resource, provider.query(resource))

    def test_custom_status_command(self):
        runner = FakeRunner({"pgrep varnishd": 0})
        provider = ServiceProvider(runner)
        resource = Resource.service("varnish", status="pgrep varnishd")

        assert provider.query(resource).get("running")
        assert runner.calls == ["pgrep varnishd"]


class TestApply:
    """Tests for start/stop."""

    def test_start(self, stopped_runner):
        provider = ServiceProvider(stopped_runner)
        resource = Resource.service("varnish")

        provider.apply(resource, provider.query(resource))

        assert stopped_runner.calls[-1] == "service varnish start"

    def test_stop(self, running_runner):
        provider = ServiceProvider(running_runner)
        resource = Resource.service("varnish", ensure="stopped")

        provider.apply(resource, provider.query(resource))

        assert running_runner.calls[-1] == "service varnish stop"

    def test_start_failure(self):
        runner = FakeRunner({"service varnish status": 3, "service varnish start": (1, "bad VCL")})
        provider = ServiceProvider(runner)
        resource = Resource.service("varnish")

        with pytest.raises(ServiceControlError) as exc_info:
            provider.apply(resource, provider.query(resource))

        assert exc_info.value.action == "start"
        assert exc_info.value.exit_code == 1
        assert "bad VCL" in exc_info.value.output

    def test_describe_change(self, stopped_runner):
        provider = ServiceProvider(stopped_runner)
        resource = Resource.service("varnish")
        assert provider.describe_change(resource, provider.query(resource)) == "ensure: stopped -> running"


class TestRestart:
    """Tests for restart on notification."""

    def test_restart_running_service(self, running_runner):
        provider = ServiceProvider(running_runner)

        assert provider.restart(Resource.service("varnish"))
        assert running_runner.calls == ["service varnish restart"]

    def test_stopped_service_is_not_restarted(self, fake_runner):
        provider = ServiceProvider(fake_runner)

        assert not provider.restart(Resource.service("varnishlog", ensure="stopped"))
        assert fake_runner.calls == []

    def test_restart_failure(self):
        runner = FakeRunner({"service varnish restart": 1})
        provider = ServiceProvider(runner)

        with pytest.raises(ServiceControlError):
            provider.restart(Resource.service("varnish"))
