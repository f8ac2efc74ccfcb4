from utils import RunManager
from schemas import Plan
from conftest import make_shot


def test_run_manager(tmp_path):
    rm = RunManager(base_dir=str(tmp_path / "runs"))
    run_dir = rm.create_run("test_123")

    assert run_dir.exists()
    assert run_dir.name == "test_123"
    assert (run_dir / "frames").exists()
    assert rm.list_runs() == ["test_123"]

    rm.save_json(run_dir, "test.json", {"foo": "bar"})
    assert (run_dir / "test.json").exists()


def test_plan_round_trip(tmp_path):
    rm = RunManager(base_dir=str(tmp_path / "runs"))
    run_dir = rm.create_run()
    plan = Plan(title="Fox", total_duration=24, shots=[make_shot(0, 0, 24, "fox")], warnings=["w"])

    path = rm.save_plan(run_dir, plan)
    assert path.name == "plan.json"
    assert rm.load_plan(run_dir) == plan
