# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

ADDON_ID = "accesslint/a11y"
PANEL_ID = f"{ADDON_ID}/panel"
TEST_PROVIDER_ID = f"{ADDON_ID}/test-provider"
STATUS_TYPE_ID = f"{ADDON_ID}/status"
HIGHLIGHT_ID = f"{ADDON_ID}/highlight"
PARAM_KEY = "a11y"

RESULT_EVENT = f"{ADDON_ID}/result"
META_EVENT = f"{ADDON_ID}/meta"
HIGHLIGHT_ADD_EVENT = "storybook/highlight/add"
HIGHLIGHT_REMOVE_EVENT = "storybook/highlight/remove"

REPORT_TYPE = "accesslint"
# Bump only on breaking payload changes.
REPORT_VERSION = 1

DEFAULT_SKIP_TAG = "no-a11y"
SKIP_TAGS_ENV = "ACCESSLINT_SKIP_TAGS"
DEFAULT_BUDGET_MS = 12

TEST_MODES = ("error", "todo")
