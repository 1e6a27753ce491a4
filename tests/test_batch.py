import base64
import dataclasses
import logging

import numpy as np
import pytest

from hintmatch.config.vision import MatchConfig
from hintmatch.vision import batch
from hintmatch.vision.batch import TemplateRequest, find_template_in_screenshot, match_templates_batch
from hintmatch.vision.results import MatchErrorCode, MatchResult


@pytest.fixture
def scene(noise_image):
    """Noise screenshot plus a few templates cut from known spots."""
    screen = noise_image(400, 300, seed=11)
    tpls = {
        "a.png": (screen[20:60, 30:90].copy(), (30 + 30, 20 + 20)),
        "b.png": (screen[200:240, 300:340].copy(), (300 + 20, 200 + 20)),
        "c.png": (screen[120:150, 150:170].copy(), (150 + 10, 120 + 15)),
    }
    return screen, tpls


def test_scenario_single_white_block(white_block_screen, png_b64):
    tpl = np.full((50, 50, 3), 255, np.uint8)
    res = find_template_in_screenshot(png_b64(white_block_screen), png_b64(tpl), 1.0, 0.3)
    assert res.found
    assert abs(res.center_x - 125) <= 5 and abs(res.center_y - 125) <= 5


def test_batch_order_and_length(scene, png_b64):
    screen, tpls = scene
    names = list(tpls)
    reqs = [(png_b64(tpls[n][0]), n) for n in names]
    results = match_templates_batch(png_b64(screen), reqs, 1.0, 0.9)
    assert [name for name, _ in results] == names
    for name, res in results:
        assert res.found, name
        assert res.center == tpls[name][1]


def test_screenshot_decode_error_fills_every_slot(png_b64):
    tpl = np.full((10, 10, 3), 255, np.uint8)
    reqs = [(png_b64(tpl), "one.png"), (png_b64(tpl), "two.png")]
    results = match_templates_batch("not valid base64 %%%", reqs, 1.0)
    assert [n for n, _ in results] == ["one.png", "two.png"]
    for _, res in results:
        assert not res.found
        assert res.error_code is MatchErrorCode.SCREENSHOT_DECODE_ERROR
        assert res.error.startswith("Screenshot decode error")
        assert not res.error_code.is_permanent
    assert results[0][1] == results[1][1]
    assert results[0][1] is not results[1][1]
    with pytest.raises(dataclasses.FrozenInstanceError):
        results[0][1].error = "changed"
    assert results[1][1].error.startswith("Screenshot decode error")


def test_screenshot_not_an_image(png_b64):
    tpl = np.full((10, 10, 3), 255, np.uint8)
    results = match_templates_batch(base64.b64encode(b"nope").decode(), [(png_b64(tpl), "x")], 1.0)
    assert results[0][1].error_code is MatchErrorCode.SCREENSHOT_DECODE_ERROR


def test_one_bad_template_does_not_affect_others(scene, png_b64, noise_image):
    screen, tpls = scene
    transparent = np.zeros((30, 30, 4), np.uint8)
    reqs = [
        (png_b64(tpls["a.png"][0]), "a.png"),
        ("@@corrupt@@", "corrupt.png"),
        (base64.b64encode(b"GIF89a?").decode(), "notimage.png"),
        (png_b64(transparent), "clear.png"),
        (png_b64(noise_image(500, 50)), "wide.png"),
        (png_b64(tpls["b.png"][0]), "b.png"),
    ]
    results = match_templates_batch(png_b64(screen), reqs, 1.0, 0.9)
    codes = [res.error_code for _, res in results]
    assert codes == [
        None,
        MatchErrorCode.TEMPLATE_BASE64_DECODE_ERROR,
        MatchErrorCode.TEMPLATE_IMAGE_DECODE_ERROR,
        MatchErrorCode.INSUFFICIENT_OPACITY,
        MatchErrorCode.TEMPLATE_TOO_LARGE,
        None,
    ]
    assert results[0][1].center == tpls["a.png"][1]
    assert results[5][1].center == tpls["b.png"][1]


def test_parallel_matches_sequential(scene, png_b64):
    screen, tpls = scene
    reqs = [(png_b64(t), n) for n, (t, _) in tpls.items()] * 3
    shot = png_b64(screen)
    seq = match_templates_batch(shot, reqs, 1.0, 0.9, max_workers=1)
    par = match_templates_batch(shot, reqs, 1.0, 0.9, max_workers=4)
    assert [n for n, _ in par] == [n for n, _ in seq]
    assert [r.center for _, r in par] == [r.center for _, r in seq]


def test_workers_default_from_config(scene, png_b64):
    screen, tpls = scene
    reqs = [(png_b64(t), n) for n, (t, _) in tpls.items()]
    results = match_templates_batch(png_b64(screen), reqs, 1.0, 0.9, config=MatchConfig(max_workers=3))
    assert all(r.found for _, r in results)


def test_screenshot_decoded_once(monkeypatch, scene, png_b64):
    screen, tpls = scene
    calls = []
    real = batch.decode_screenshot

    def counting(payload):
        calls.append(1)
        return real(payload)

    monkeypatch.setattr(batch, "decode_screenshot", counting)
    reqs = [(png_b64(t), n) for n, (t, _) in tpls.items()]
    match_templates_batch(png_b64(screen), reqs, 1.0, 0.9)
    assert len(calls) == 1


def test_per_request_overrides(scene, png_b64, noise_image):
    screen, tpls = scene
    big = noise_image(100, 100, seed=5)
    reqs = [
        TemplateRequest(data=png_b64(big), file_name="half.png", scale_factor=0.5),
        TemplateRequest(data=png_b64(tpls["a.png"][0]), file_name="strict.png", confidence_threshold=1.0),
        (png_b64(tpls["c.png"][0]), None),
    ]
    results = match_templates_batch(png_b64(screen), reqs, 1.0, 0.9)
    half = results[0][1]
    assert (half.template_width, half.template_height) == (50, 50)
    assert results[1][0] == "strict.png"
    assert results[1][1].error is None
    assert results[2][0] == "#2"
    assert results[2][1].found


@pytest.mark.parametrize("override", [{"scale_factor": 0.0}, {"confidence_threshold": 1.5}])
def test_invalid_request_override_reported_in_its_slot(override, scene, png_b64, caplog):
    screen, tpls = scene
    data, center = tpls["a.png"]
    reqs = [
        TemplateRequest(data=png_b64(data), file_name="good.png"),
        TemplateRequest(data=png_b64(data), file_name="bad.png", **override),
    ]
    with caplog.at_level(logging.WARNING, logger="hintmatch.vision.batch"):
        results = match_templates_batch(png_b64(screen), reqs, 1.0, 0.9)
    assert [n for n, _ in results] == ["good.png", "bad.png"]
    assert results[0][1].found and results[0][1].center == center
    bad = results[1][1]
    assert not bad.found
    assert bad.error.startswith("Invalid template request")
    assert bad.error_code is None
    assert "bad.png" in caplog.text


def test_unexpected_failure_is_contained(monkeypatch, scene, png_b64, caplog):
    screen, tpls = scene
    real = batch.match_template_gray

    def flaky(screen_gray, payload, *args, **kwargs):
        if payload == "boom":
            raise RuntimeError("kaboom")
        return real(screen_gray, payload, *args, **kwargs)

    monkeypatch.setattr(batch, "match_template_gray", flaky)
    reqs = [("boom", "x.png"), (png_b64(tpls["a.png"][0]), "a.png")]
    with caplog.at_level(logging.ERROR):
        results = match_templates_batch(png_b64(screen), reqs, 1.0, 0.9)
    assert results[0][1].found is False
    assert "kaboom" in results[0][1].error
    assert results[0][1].error_code is None
    assert results[1][1].found
    assert "x.png" in caplog.text


def test_empty_template_list(png_b64, white_block_screen):
    assert match_templates_batch(png_b64(white_block_screen), [], 1.0) == []


@pytest.mark.parametrize("scale", [0.0, -0.5, 1.5, float("nan")])
def test_invalid_scale_factor_rejected(scale, png_b64, white_block_screen):
    with pytest.raises(ValueError):
        match_templates_batch(png_b64(white_block_screen), [], scale)


@pytest.mark.parametrize("thr", [-0.1, 1.01, float("inf")])
def test_invalid_threshold_rejected(thr, png_b64, white_block_screen):
    with pytest.raises(ValueError):
        match_templates_batch(png_b64(white_block_screen), [], 1.0, thr)


def test_error_code_facets():
    permanent = {code for code in MatchErrorCode if code.is_permanent}
    assert permanent == {
        MatchErrorCode.TEMPLATE_BASE64_DECODE_ERROR,
        MatchErrorCode.TEMPLATE_IMAGE_DECODE_ERROR,
        MatchErrorCode.INSUFFICIENT_OPACITY,
        MatchErrorCode.NON_FINITE_CONFIDENCE,
    }
    assert [c for c in MatchErrorCode if c.is_size_related] == [MatchErrorCode.TEMPLATE_TOO_LARGE]


def test_match_result_wire_shape():
    res = MatchResult.failure(MatchErrorCode.TEMPLATE_TOO_LARGE, "too big", size=(4, 5), confidence=0.0)
    d = res.to_dict()
    assert d == {
        "found": False,
        "centerX": None,
        "centerY": None,
        "confidence": 0.0,
        "templateWidth": 4,
        "templateHeight": 5,
        "error": "too big",
        "errorCode": "template_too_large",
    }
