import json
from datetime import datetime
from pathlib import Path

from schemas import Plan


class RunManager:
    """One directory per production run; plans are stored as plain JSON between stages."""

    PLAN_FILE = "plan.json"

    def __init__(self, base_dir: str = "runs"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def create_run(self, run_id: str = None) -> Path:
        if not run_id:
            run_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        run_dir = self.base_dir / run_id
        run_dir.mkdir(exist_ok=True)
        (run_dir / "frames").mkdir(exist_ok=True)
        return run_dir

    def save_json(self, run_dir: Path, filename: str, data: dict):
        with open(run_dir / filename, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def save_plan(self, run_dir: Path, plan: Plan) -> Path:
        path = run_dir / self.PLAN_FILE
        path.write_text(plan.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        return path

    def load_plan(self, run_dir: Path) -> Plan:
        return Plan.model_validate_json((run_dir / self.PLAN_FILE).read_text(encoding="utf-8"))

    def list_runs(self) -> list:
        return sorted(p.name for p in self.base_dir.iterdir() if p.is_dir())
