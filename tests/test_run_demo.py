from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from run_demo import build_parser, generate_synthetic_series, main


def test_synthetic_series_is_reproducible() -> None:
    first = generate_synthetic_series(bars=120, seed=11)
    second = generate_synthetic_series(bars=120, seed=11)
    assert len(first) == 120
    pd.testing.assert_frame_equal(first.frame, second.frame)
    assert (first.highs >= first.lows).all()


def test_parser_requires_a_source() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_main_with_synthetic_data_writes_report(tmp_path: Path) -> None:
    output = tmp_path / "reports" / "demo.json"
    assert main(["--synthetic", "--symbol", "SYN", "--output", str(output)]) == 0

    payload = json.loads(output.read_text())
    assert payload["symbol"] == "SYN"
    assert payload["bars_analyzed"] == 252
    assert 60 <= payload["confidence"] <= 95


def test_main_with_short_csv_fails(tmp_path: Path) -> None:
    path = tmp_path / "short.csv"
    generate_synthetic_series(bars=20).frame.reset_index().to_csv(path, index=False)
    assert main(["--input", str(path)]) == 1


def test_main_with_missing_file_fails(tmp_path: Path) -> None:
    assert main(["--input", str(tmp_path / "missing.csv")]) == 1
