import pytest


CONF = """
[fast]
API_KEY      = "k-fast"
MODEL_NAME   = "fast-model"
API_ENDPOINT = "https://fast.example/v1/chat/completions"

[smart]
API_KEY      = "k-smart"
MODEL_NAME   = "smart-model"
API_ENDPOINT = "https://smart.example/v1/chat/completions"

[scenarios]
dialogue      = "fast"
multifunction = "smart"

[aliases]
proj = { prompt = "create {0} named {1}", profile = "fast" }
plain = { prompt = "list files in {0}" }
""".strip()


@pytest.fixture
def conf_path(tmp_path, monkeypatch):
    p = tmp_path / "chatstep.conf"
    p.write_text(CONF)
    monkeypatch.setenv("CHATSTEP_CONFIG", str(p))
    for var in ("CHATSTEP_PROFILE", "CHATSTEP_MAX_FIXES", "CHATSTEP_ALLOW_STDERR", "CHATSTEP_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    # Keep a stray .env in the working directory out of the tests.
    monkeypatch.chdir(tmp_path)
    return p
