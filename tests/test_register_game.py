"""Tests for the game registration script."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from stacker_server.core.errors import ChainSubmissionError
from stacker_server.core.settings import settings
from stacker_server.scripts import register_game


@pytest.fixture()
def configured_chain(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "rpc_url", "http://rpc.test")
    monkeypatch.setattr(settings, "contract_addr", "0x" + "ab" * 20)
    monkeypatch.setattr(settings, "server_private_key", "0x" + "11" * 32)


def test_refuses_without_chain_configuration(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(settings, "rpc_url", None)

    assert register_game.main([]) == 1
    assert "RPC_URL" in capsys.readouterr().err


def test_registers_with_given_metadata(
    configured_chain: None, capsys: pytest.CaptureFixture[str]
) -> None:
    with patch.object(register_game, "ChainSubmitter") as submitter_cls:
        submitter = submitter_cls.return_value
        submitter.register_game = AsyncMock(return_value="0xfeed")

        code = register_game.main(
            ["--name", "Stacker", "--image", "https://i.test/a.png", "--url", "https://g.test"]
        )

    assert code == 0
    submitter.register_game.assert_awaited_once_with("Stacker", "https://i.test/a.png", "https://g.test")
    assert "0xfeed" in capsys.readouterr().out


def test_reports_chain_failure(
    configured_chain: None, capsys: pytest.CaptureFixture[str]
) -> None:
    with patch.object(register_game, "ChainSubmitter") as submitter_cls:
        submitter_cls.return_value.register_game = AsyncMock(
            side_effect=ChainSubmissionError("reverted")
        )
        assert register_game.main([]) == 1

    assert "registerGame failed" in capsys.readouterr().err
