"""
Tests for the mealplanner CLI.
"""

import json

from typer.testing import CliRunner

from mealplanner.main import app

runner = CliRunner()


class TestHealth:
    def test_reports_configuration(self):
        result = runner.invoke(app, ["health"])
        assert result.exit_code == 0
        assert "Configuration loaded" in result.output
        assert "mock generator" in result.output


class TestGenerate:
    """Run a plan end to end with the in-memory backend and mock generator."""

    def _write(self, tmp_path, plan):
        path = tmp_path / "plan.json"
        path.write_text(
            json.dumps(
                {
                    "plan": plan,
                    "groups": [
                        {"id": "family", "name": "Family", "adults": 2, "kids": 1},
                        {"id": "veg", "name": "Veggie", "adults": 1, "dietary_restrictions": ["vegan"]},
                    ],
                }
            ),
            encoding="utf-8",
        )
        return path

    def test_generates_meals(self, tmp_path):
        path = self._write(
            tmp_path,
            {
                "planName": "CLI plan",
                "weekStart": "2026-01-05",
                "groupMeals": [{"groupId": "family", "mealCount": 3}, {"groupId": "veg", "mealCount": 1}],
            },
        )

        result = runner.invoke(app, ["generate", str(path)])

        assert result.exit_code == 0, result.output
        assert "Generated 8 meals" in result.output

    def test_invalid_plan_exits_nonzero(self, tmp_path):
        path = self._write(tmp_path, {"planName": "", "groupMeals": []})

        result = runner.invoke(app, ["generate", str(path)])

        assert result.exit_code == 1
        assert "Invalid plan data" in result.output
