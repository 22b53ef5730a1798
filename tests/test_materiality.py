from services.schedules.materiality import (
    MaterialityInputs,
    compute_materiality,
    format_gbp,
    render_materiality_markdown,
    turnover_rate,
)


def test_turnover_bands():
    assert turnover_rate(500_000) == 4.0
    assert turnover_rate(500_001) == 2.5
    assert turnover_rate(2_000_000) == 2.0
    assert turnover_rate(5_000_000) == 1.5
    assert turnover_rate(5_000_001) == 1.0


def test_average_of_available_bases():
    f = compute_materiality(MaterialityInputs(turnover_current=400_000, net_profit_current=50_000))
    assert f.turnover_basis_current == 16_000
    assert f.profit_basis_current == 5_000
    assert f.average == 10_500
    assert f.materiality == 10_500
    assert f.materiality_x1_5 == 15_750
    assert f.tolerable_error == 5_250
    assert f.tolerable_error_half == 2_625
    assert f.tolerable_error_quarter == 1_313
    assert f.tolerable_error_tenth == 525


def test_minimum_materiality():
    f = compute_materiality(MaterialityInputs(turnover_current=10_000))
    assert f.materiality == 1_000
    assert f.tolerable_error == 500


def test_nothing_to_compute():
    f = compute_materiality(MaterialityInputs())
    assert f.materiality is None
    md = render_materiality_markdown(MaterialityInputs(turnover_prior=1234.5))
    assert md.startswith("# **Materiality and tolerable error**")
    assert "Enter turnover and/or net profit" not in md
    stub = render_materiality_markdown(MaterialityInputs())
    assert "Enter turnover and/or net profit in **Period setup**" in stub
    assert "- Current turnover: -" in stub


def test_markdown_shows_rates_and_amounts():
    md = render_materiality_markdown(MaterialityInputs(turnover_current=1_500_000, turnover_prior=900_000))
    assert "- Current turnover basis (2.0%): £30,000.00" in md
    assert "- Prior turnover basis (2.5%): £22,500.00" in md
    assert "**Materiality:** £26,250" in md
    assert "(minimum materiality applied: £1,000)" in md


def test_format_gbp():
    assert format_gbp(1234567) == "£1,234,567"
    assert format_gbp(-12.5, 2) == "-£12.50"
    assert format_gbp(None) == "-"
