"""Run scenario definitions and write outputs to out/scenarios."""

from __future__ import annotations

import json
from pathlib import Path

from json2tables.csv_io import write_registry
from json2tables.scenarios import get_scenarios


def main() -> None:
    out_dir = Path("out/scenarios")
    out_dir.mkdir(parents=True, exist_ok=True)

    for scenario in get_scenarios():
        scenario_dir = out_dir / scenario.name
        scenario_dir.mkdir(parents=True, exist_ok=True)

        input_path = scenario_dir / "input.json"
        payload = {"documents": list(scenario.documents), "mapping": scenario.mapping, "root_node": scenario.root_node}
        input_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

        written = write_registry(scenario.run(), scenario_dir / "tables", manifests=False)

        print(f"{scenario.name}: wrote {', '.join(path.name for path in written)}")


if __name__ == "__main__":
    main()
