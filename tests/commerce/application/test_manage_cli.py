"""Tests for the management CLI configuration check."""

import manage


def test_check_config_passes_with_defaults(monkeypatch, capsys):
    for key in ("PAYMENT_PROVIDER", "EMAIL_BACKEND", "OVERSELL_POLICY"):
        monkeypatch.delenv(key, raising=False)

    assert manage.check_config() == 0
    assert "Configuration OK" in capsys.readouterr().out


def test_check_config_lists_every_problem(monkeypatch, capsys):
    monkeypatch.setenv("PAYMENT_PROVIDER", "paddle")
    monkeypatch.setenv("OVERSELL_POLICY", "sometimes")
    for key in ("PADDLE_API_KEY", "PADDLE_WEBHOOK_SECRET", "PADDLE_CHECKOUT_URL"):
        monkeypatch.delenv(key, raising=False)

    assert manage.check_config() == 1

    output = capsys.readouterr().out
    assert "PADDLE_API_KEY is required" in output
    assert "PADDLE_WEBHOOK_SECRET is required" in output
    assert "OVERSELL_POLICY must be one of" in output
