import argparse
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .pbit import PbitGenerator

# Registry of generators
GENERATORS: Dict[str, Any] = {
    "pbit": PbitGenerator,
}


def load_manifest(manifest_path: Path) -> Dict[str, Any]:
    if not manifest_path.exists():
        print(f"Error: Manifest file not found at {manifest_path}")
        sys.exit(1)

    with open(manifest_path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            print(f"Error parsing manifest: {e}")
            sys.exit(1)


def run_manifest(manifest: Dict[str, Any], output_dir: Path, force: bool = False) -> List[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)

    scenarios = manifest.get("scenarios", [])
    print(f"Found {len(scenarios)} scenarios in manifest.")

    written: List[Path] = []
    for scenario in scenarios:
        scenario_id = scenario.get("id")
        generator_name = scenario.get("generator")
        generator_args = scenario.get("args", {})
        outputs = scenario.get("output")

        if not scenario_id or not generator_name or not outputs:
            print(f"Skipping invalid scenario: {scenario}")
            continue

        names = [outputs] if isinstance(outputs, str) else list(outputs)
        if not force and all((output_dir / n).exists() for n in names):
            print(f"Skipping scenario: {scenario_id} (exists, use --force)")
            continue

        print(f"Processing scenario: {scenario_id} (Generator: {generator_name})")

        if generator_name not in GENERATORS:
            print(f"  Warning: Generator '{generator_name}' not implemented. Skipping.")
            continue

        try:
            generator = GENERATORS[generator_name](generator_args)
            written.extend(generator.generate(output_dir, names))
            print(f"  Success: Generated {names}")
        except (ValueError, OSError) as e:
            print(f"  Error generating scenario {scenario_id}: {e}")
            traceback.print_exc()
    return written


def main(argv: Optional[List[str]] = None) -> int:
    default_manifest = Path(__file__).parent.resolve() / "manifest.yaml"

    parser = argparse.ArgumentParser(description="Generate sample template containers from a manifest.")
    parser.add_argument("--manifest", type=Path, default=default_manifest, help="Path to the manifest YAML file.")
    parser.add_argument("--output-dir", type=Path, default=Path("samples"), help="Directory to output generated files.")
    parser.add_argument("--force", action="store_true", help="Force regeneration of existing files.")
    args = parser.parse_args(argv)

    run_manifest(load_manifest(args.manifest), args.output_dir, force=args.force)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
