"""
Render the production ambient layers to WAV files.

Usage:
    python scripts/export_clips.py [output_dir]
"""

import sys
from pathlib import Path

# Add repository root to path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))


def main(output_dir: str = "data/clips") -> int:
    from flow.audio.encoder import export_clip
    from flow.audio.engine import ClipGenerator

    generator = ClipGenerator()
    results = generator.generate_all()

    failed = 0
    for layer, result in results.items():
        if result.ok:
            path = export_clip(result.clip, Path(output_dir) / f"{layer}.wav")
            print(f"✓ {layer}: {result.clip.duration:.3f}s -> {path}")
        else:
            failed += 1
            print(f"✗ {layer}: {result.error}")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:2]))
