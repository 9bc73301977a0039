import pytest

from core.config import Settings


class TestApprovalLease:
    """The approval lease has to outlast the Midtrans timeout"""

    def test_defaults_are_consistent(self, monkeypatch):
        monkeypatch.delenv("APPROVAL_LEASE_SECONDS", raising=False)
        monkeypatch.delenv("MIDTRANS_TIMEOUT_SECONDS", raising=False)

        settings = Settings()

        assert settings.APPROVAL_LEASE_SECONDS > 2 * settings.MIDTRANS_TIMEOUT_SECONDS

    @pytest.mark.parametrize("lease,timeout", [("30", "20"), ("40", "20"), ("10", "30")])
    def test_lease_not_longer_than_gateway_timeout(self, monkeypatch, lease, timeout):
        monkeypatch.setenv("APPROVAL_LEASE_SECONDS", lease)
        monkeypatch.setenv("MIDTRANS_TIMEOUT_SECONDS", timeout)

        with pytest.raises(RuntimeError, match="APPROVAL_LEASE_SECONDS"):
            Settings()

    def test_longer_lease_accepted(self, monkeypatch):
        monkeypatch.setenv("APPROVAL_LEASE_SECONDS", "41")
        monkeypatch.setenv("MIDTRANS_TIMEOUT_SECONDS", "20")

        assert Settings().APPROVAL_LEASE_SECONDS == 41
