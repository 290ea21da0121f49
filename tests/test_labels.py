from datetime import datetime

from shiftboard.labels import fill_template, render_label


def test_fill_template_replaces_every_occurrence():
    html = "{{lot_code}}-{{best_by}}-{{lot_code}}"
    assert fill_template(html, "260226", "02/2027") == "260226-02/2027-260226"
    assert fill_template(None, "x", "y") == ""


def test_render_label_uses_production_day(backend):
    out = render_label(backend, "labels", "user-1", "bulk.html", now=datetime(2026, 2, 27, 6, 0))
    assert out == "<p>LOT 260226 BB 02/2027 / 260226</p>"
    assert backend.calls == [("download_object", "labels", "user-1/bulk.html")]


def test_render_label_overrides(backend):
    out = render_label(backend, "labels", "u", "f.html", now=datetime(2026, 2, 26, 9, 0),
                       lot="999999", best="01/2030")
    assert out == "<p>LOT 999999 BB 01/2030 / 999999</p>"
