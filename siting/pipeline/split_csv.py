"""Split a large CSV export into numbered chunk files."""

from __future__ import annotations

import csv
from pathlib import Path

from siting.common.constants import DEFAULT_ROWS_PER_CHUNK
from siting.common.errors import ConfigError, SourceUnreadable
from siting.common.fs import ensure_dir


def split_csv(
    input_path: Path,
    output_dir: Path,
    rows_per_file: int = DEFAULT_ROWS_PER_CHUNK,
    template: str = "chunk_{ordinal}.csv",
) -> list[Path]:
    """Write ``chunk_1.csv .. chunk_K.csv``, each starting with the source header."""
    if rows_per_file < 1:
        raise ConfigError("rows_per_file must be at least 1")
    if not input_path.exists():
        raise SourceUnreadable(f"Source not found: {input_path}")

    ensure_dir(output_dir)
    written: list[Path] = []
    out_file = None
    writer = None
    try:
        with input_path.open("r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if header is None:
                return written
            for index, row in enumerate(reader):
                if index % rows_per_file == 0:
                    if out_file is not None:
                        out_file.close()
                    path = output_dir / template.format(ordinal=len(written) + 1)
                    out_file = path.open("w", encoding="utf-8", newline="")
                    writer = csv.writer(out_file)
                    writer.writerow(header)
                    written.append(path)
                writer.writerow(row)
    except (csv.Error, UnicodeDecodeError) as exc:
        raise SourceUnreadable(f"Could not split {input_path}: {exc}") from exc
    finally:
        if out_file is not None:
            out_file.close()
    return written
