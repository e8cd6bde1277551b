from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import requests

from codefuse.exceptions import ConfigError, ReviewError
from codefuse.review import submit_review

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

URL = "https://review.invalid/api/review"


@pytest.mark.unit
def test_submit_review_posts_bundle_with_bearer_token(mocker: MockerFixture) -> None:
    post = mocker.patch("codefuse.review.requests.post")
    post.return_value.ok = True
    post.return_value.text = "looks good"

    answer = submit_review("bundle text", api_key="k3y", url=URL, timeout=5.0)

    assert answer == "looks good"
    post.assert_called_once_with(
        URL,
        json={"content": "bundle text"},
        headers={"Authorization": "Bearer k3y"},
        timeout=5.0,
    )


@pytest.mark.unit
@pytest.mark.parametrize(("api_key", "url"), [("", URL), ("k3y", "")])
def test_submit_review_requires_key_and_url(mocker: MockerFixture, api_key: str, url: str) -> None:
    post = mocker.patch("codefuse.review.requests.post")

    with pytest.raises(ConfigError):
        submit_review("bundle", api_key=api_key, url=url)

    post.assert_not_called()


@pytest.mark.unit
def test_submit_review_maps_error_status(mocker: MockerFixture) -> None:
    post = mocker.patch("codefuse.review.requests.post")
    post.return_value.ok = False
    post.return_value.status_code = 401
    post.return_value.text = "bad key"

    with pytest.raises(ReviewError) as exc_info:
        submit_review("bundle", api_key="k3y", url=URL)

    assert exc_info.value.status_code == 401  # noqa: PLR2004
    assert "bad key" in str(exc_info.value)


@pytest.mark.unit
def test_submit_review_maps_network_errors(mocker: MockerFixture) -> None:
    mocker.patch("codefuse.review.requests.post", side_effect=requests.ConnectionError("refused"))

    with pytest.raises(ReviewError) as exc_info:
        submit_review("bundle", api_key="k3y", url=URL)

    assert exc_info.value.status_code is None
