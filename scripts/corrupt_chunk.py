import sys
from pathlib import Path

from ferry_core.protocol import DELIMITER


def main():
    if len(sys.argv) != 2:
        print("Usage: corrupt_chunk.py <record.txt>")
        raise SystemExit(2)

    p = Path(sys.argv[1])
    text = p.read_text(encoding="utf-8").strip()
    head, sep, payload = text.rpartition(DELIMITER)
    if not sep or len(payload) < 2:
        print("Record payload too small to corrupt safely.")
        raise SystemExit(2)

    # '*' is outside the base64 alphabet; the record still parses.
    idx = len(payload) // 2
    payload = payload[:idx] + "*" + payload[idx + 1:]
    p.write_text(head + sep + payload, encoding="utf-8")
    print(f"Corrupted payload character {idx} in {p}")

if __name__ == "__main__":
    main()
