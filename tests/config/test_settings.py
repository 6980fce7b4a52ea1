import re
import runpy
from pathlib import Path

import config.settings.base

BASE_SETTINGS = Path(config.settings.base.__file__)


def test_base_settings_load_with_only_the_required_env(monkeypatch):
    for name in ("CURRENCY", "CURRENCY_SYMBOL", "OVERRIDE_RATE", "SOP_MASTER_VERSION"):
        monkeypatch.delenv(name, raising=False)

    namespace = runpy.run_path(str(BASE_SETTINGS))

    assert namespace["OVERRIDE_RATE"] == "0.10"
    assert namespace["OVERRIDE_COMMISSION_LIMIT"] == 10
    assert namespace["STALE_REVIEW_HOURS"] == 72


def test_no_env_default_starts_with_a_dollar_sign():
    # django-environ reads a leading "$" as a reference to another variable.
    source = BASE_SETTINGS.read_text()
    assert not re.search(r"""default=["']\$""", source)
