from pathlib import Path

from granted_relay import cli


def test_show_config_prints_resolved_sections(tmp_path: Path, capsys) -> None:
    config_path = tmp_path / "granted-relay.cfg"
    config_path.write_text("[broker]\nhost = mqtt.lan:1884\n", encoding="utf-8")

    assert cli.main(["-c", str(config_path), "show-config"]) == 0

    output = capsys.readouterr().out
    assert f"Configuration loaded from {config_path}" in output
    assert "[broker]" in output
    assert "host = mqtt.lan" in output
    assert "port = 1884" in output
    assert "[timing]" in output


def test_start_delegates_to_relay_app(tmp_path: Path, monkeypatch) -> None:
    started = []
    monkeypatch.setattr(
        cli.RelayApp, "start", classmethod(lambda cls, config: started.append(config))
    )

    assert cli.main(["-c", str(tmp_path / "missing.cfg"), "start"]) == 0

    assert len(started) == 1
    assert started[0].broker.host == "192.168.0.5"
