from __future__ import annotations

from datetime import date

import pytest

from release_radar.infra.steam.dto import (
    parse_app_details,
    parse_release_date,
    parse_search_results,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("14 Mar, 2025", date(2025, 3, 14)),
        ("Mar 14, 2025", date(2025, 3, 14)),
        ("14 March, 2025", date(2025, 3, 14)),
        ("2025-03-14", date(2025, 3, 14)),
        ("March 2025", date(2025, 3, 1)),
        ("14\xa0Mar,\xa02025", date(2025, 3, 14)),
        ("Coming soon", None),
        ("Q3 2025", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_release_date(raw: object, expected: date | None) -> None:
    assert parse_release_date(raw) == expected


def test_parse_search_results_falls_back_to_href() -> None:
    html = (
        '<a class="search_result_row" href="https://store.steampowered.com/app/42/Answer/">'
        '<span class="title">Answer</span></a>'
        '<a class="search_result_row" href="https://store.steampowered.com/bundle/7/">x</a>'
    )

    rows = parse_search_results(html)

    assert len(rows) == 1
    assert rows[0].app_id == 42
    assert rows[0].title == "Answer"
    assert rows[0].tentative_release_date is None


def test_parse_app_details_rejects_missing_name() -> None:
    payload = {"7": {"success": True, "data": {"name": "  "}}}

    with pytest.raises(ValueError):
        parse_app_details(payload, 7, app_url_template="https://x/{app_id}")


def test_parse_app_details_handles_missing_optional_sections() -> None:
    payload = {"7": {"success": True, "data": {"name": "Seven"}}}

    detail = parse_app_details(payload, 7, app_url_template="https://x/app/{app_id}/")

    assert detail is not None
    assert detail.release_date is None
    assert detail.tags == ()
    assert (detail.windows, detail.mac, detail.linux) == (False, False, False)
    assert detail.store_url == "https://x/app/7/"
