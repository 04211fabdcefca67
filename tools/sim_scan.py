import random
import uuid
import zipfile
from pathlib import Path

from ferry_core.protocol import INDEX_FILE, TEXT_SUFFIX
from ferry_core.records import decode_record

NOISE_TEXTS = [
    "WIFI:S:guest;T:WPA;P:hunter2;;",
    "https://example.com/menu",
    "not|~|a|~|record",
]


def load_records(record_dir: Path) -> list[tuple[str, str]]:
    """(file name, wire text) for every record file in a split output directory."""
    out = []
    for p in sorted(Path(record_dir).glob(f"*{TEXT_SUFFIX}")):
        if p.name == INDEX_FILE:
            continue
        text = p.read_text(encoding="utf-8")
        decode_record(text)  # refuse to simulate from a broken split
        out.append((p.name, text))
    return out


def generate_session(
    records: list[tuple[str, str]],
    out_dir: Path,
    drop: float = 0.2,
    dup: float = 0.1,
    noise: int = 1,
    lost: set[int] | None = None,
    rng: random.Random | None = None,
) -> Path:
    """Write one lossy scan session as a zip archive."""
    rng = rng or random.Random()
    lost = lost or set()
    sess_id = str(uuid.UUID(int=rng.getrandbits(128)))
    path = Path(out_dir) / f"session-{sess_id[:8]}.zip"
    path.parent.mkdir(parents=True, exist_ok=True)

    # A scanner saves codes in the order the operator points the camera.
    scanned = []
    for i, (name, text) in enumerate(records):
        if i in lost or rng.random() < drop:
            continue
        scanned.append(text + "\n")
        if rng.random() < dup:
            scanned.append(text)
    rng.shuffle(scanned)
    scanned += rng.sample(NOISE_TEXTS, k=min(noise, len(NOISE_TEXTS)))

    with zipfile.ZipFile(path, "w") as zf:
        for n, text in enumerate(scanned):
            zf.writestr(f"qr_text_data/scan_{n:04d}.txt", text)

    print(f"GENERATED: {path} ({len(scanned)} entries)")
    return path


if __name__ == "__main__":
    import sys

    # Usage:
    #   python tools/sim_scan.py RECORD_DIR OUT_DIR [--sessions N] [--drop P] [--dup P]
    #                            [--noise N] [--lose I,J,...] [--seed S]

    args = [a for a in sys.argv[1:] if a]

    def pop_value(arg_list: list[str], flag: str, default: str) -> tuple[str, list[str]]:
        """Remove a valued option from an argv-style list."""
        if flag not in arg_list:
            return default, arg_list
        i = arg_list.index(flag)
        if i + 1 >= len(arg_list):
            raise SystemExit(f"{flag} requires a value")
        return arg_list[i + 1], arg_list[:i] + arg_list[i + 2:]

    sessions, args = pop_value(args, "--sessions", "2")
    drop, args = pop_value(args, "--drop", "0.2")
    dup, args = pop_value(args, "--dup", "0.1")
    noise, args = pop_value(args, "--noise", "1")
    lose, args = pop_value(args, "--lose", "")
    seed, args = pop_value(args, "--seed", "")

    if len(args) != 2:
        raise SystemExit("Usage: sim_scan.py RECORD_DIR OUT_DIR [options]")

    rng = random.Random(int(seed)) if seed else random.Random()
    lost = {int(x) for x in lose.split(",") if x}
    records = load_records(Path(args[0]))
    for _ in range(int(sessions)):
        generate_session(records, Path(args[1]), float(drop), float(dup), int(noise), lost, rng)
