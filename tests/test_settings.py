from portfolio_engine.config.settings import DEFAULT_MAX_ADVICE_ITEMS, EngineSettings, get_settings


def test_get_settings_defaults(monkeypatch) -> None:
    for name in (
        "PORTFOLIO_DRIFT_TOLERANCE_PCT",
        "PORTFOLIO_AI_TOTAL_BAND",
        "PORTFOLIO_HOLDINGS_TOLERANCE",
        "PORTFOLIO_MAX_ADVICE_ITEMS",
        "PORTFOLIO_MAX_REASONABLE_PRICE",
        "PORTFOLIO_STOP_LOSS_THRESHOLD_PCT",
        "PORTFOLIO_DEFAULT_COUNTRY",
    ):
        monkeypatch.delenv(name, raising=False)
    assert get_settings() == EngineSettings()


def test_get_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("PORTFOLIO_AI_TOTAL_BAND", "0.3")
    monkeypatch.setenv("PORTFOLIO_MAX_ADVICE_ITEMS", "five")
    monkeypatch.setenv("PORTFOLIO_DEFAULT_COUNTRY", " kr ")
    settings = get_settings()
    assert settings.ai_total_band == 0.3
    assert settings.max_advice_items == DEFAULT_MAX_ADVICE_ITEMS
    assert settings.default_country == "KR"
