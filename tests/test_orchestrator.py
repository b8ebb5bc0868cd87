"""End-to-end tests for recipe orchestration."""

import json
import tempfile
from dataclasses import replace
from pathlib import Path

import pytest

from architech.config import ArchitechConfig
from architech.errors import MissingDependency, ModuleConflict, PlanningFailed, RecipeValidationError
from architech.executor import BlueprintExecutor
from architech.factory import build_orchestrator
from architech.loader import AdapterLoader
from architech.orchestrator import ExecutionOrchestrator
from architech.parser import RecipeParser
from architech.registry import AdapterRegistry


class SpyLoader(AdapterLoader):
    def __init__(self, registry):
        super().__init__(registry)
        self.loaded = []

    def load(self, category, adapter_id):
        self.loaded.append(f"{category}/{adapter_id}")
        return super().load(category, adapter_id)


def recipe(project_dir, *modules, **project):
    data = {
        "project": {"name": "shop", "path": str(project_dir), **project},
        "modules": [
            module if isinstance(module, dict) else dict(zip(("category", "id"), module.split("/")))
            for module in modules
        ],
    }
    return RecipeParser().parse_data(data)


@pytest.fixture
def workspace():
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def orchestrator(builtin_registry, runner_factory):
    runner = runner_factory()
    built = build_orchestrator(ArchitechConfig(), registry=builtin_registry, command_runner=runner)
    built.runner = runner
    return built


class TestSaasScenario:
    """nextjs + drizzle + better-auth with the built-in adapters."""

    def test_better_auth_runs_last(self, orchestrator, workspace):
        project_dir = workspace / "shop"
        report = orchestrator.run(recipe(project_dir, "auth/better-auth", "database/drizzle", "framework/nextjs"))

        assert report.success, [issue.describe() for issue in report.all_errors()]
        assert [r.module for r in report.results] == ["database/drizzle", "framework/nextjs", "auth/better-auth"]

        manifest = json.loads((project_dir / "package.json").read_text())
        assert manifest["name"] == "shop"
        assert {"next", "drizzle-orm", "better-auth"} <= set(manifest["dependencies"])
        assert manifest["scripts"]["db:migrate"] == "drizzle-kit migrate"

        schema = (project_dir / "src/lib/db/schema.ts").read_text()
        assert "export const healthChecks" in schema
        assert "export const users" in schema
        assert "boolean" in schema.splitlines()[0]
        assert (project_dir / "src/lib/auth/config.ts").exists()
        assert (project_dir / "src/app/api/auth/[...all]/route.ts").exists()

        env = (project_dir / ".env.example").read_text()
        assert "DATABASE_URL=postgres://localhost:5432/app" in env
        assert "BETTER_AUTH_SECRET=change-me" in env

        assert orchestrator.runner.calls[0][0] == ["npm", "install"]

    def test_either_order_of_independent_modules(self, orchestrator, workspace):
        report = orchestrator.run(recipe(workspace, "framework/nextjs", "database/drizzle", "auth/better-auth"))
        assert [r.module for r in report.results] == ["framework/nextjs", "database/drizzle", "auth/better-auth"]

    def test_missing_database_fails_planning(self, orchestrator, workspace):
        project_dir = workspace / "shop"
        with pytest.raises(PlanningFailed) as exc_info:
            orchestrator.run(recipe(project_dir, "framework/nextjs", "auth/better-auth"))

        errors = exc_info.value.errors
        assert len(errors) == 1
        assert isinstance(errors[0], MissingDependency)
        assert errors[0].module == "auth/better-auth"
        assert errors[0].requirement == "drizzle"
        assert not project_dir.exists()

    def test_add_to_existing_project(self, orchestrator, workspace):
        schema = workspace / "src/lib/db/schema.ts"
        schema.parent.mkdir(parents=True)
        schema.write_text('import { pgTable } from "drizzle-orm/pg-core";\n')

        report = orchestrator.run(recipe(workspace, "auth/better-auth"), assume_present=["drizzle", "nextjs"])
        assert report.success
        assert "export const sessions" in schema.read_text()

    def test_skip_install(self, orchestrator, workspace):
        data = recipe(workspace, "framework/nextjs")
        report = orchestrator.run(replace(data, options=replace(data.options, skip_install=True)))
        assert report.success
        assert [call[0] for call in orchestrator.runner.calls] == [["git", "init"]]
        assert "COMMAND_SKIPPED" in [w.code for w in report.all_warnings()]

    def test_skip_git(self, orchestrator, workspace):
        data = recipe(workspace, "framework/nextjs")
        report = orchestrator.run(replace(data, options=replace(data.options, skip_git=True)))
        assert report.success
        assert [call[0] for call in orchestrator.runner.calls] == [["npm", "install"]]
        skipped = [w for w in report.all_warnings() if w.code == "ACTION_SKIPPED"]
        assert [w.target for w in skipped] == ["git init"]

    def test_git_is_initialised_after_install(self, orchestrator, workspace):
        report = orchestrator.run(recipe(workspace, "framework/nextjs"))
        assert report.success
        assert [call[0] for call in orchestrator.runner.calls] == [["npm", "install"], ["git", "init"]]


class TestConflicts:
    def test_conflict_is_detected_before_loading(self, builtin_registry, workspace):
        loader = SpyLoader(builtin_registry)
        orchestrator = ExecutionOrchestrator(builtin_registry, loader=loader)
        project_dir = workspace / "shop"

        with pytest.raises(PlanningFailed) as exc_info:
            orchestrator.run(recipe(project_dir, "framework/nextjs", "payment/stripe", "payment/paypal"))

        conflict = exc_info.value.errors[0]
        assert isinstance(conflict, ModuleConflict)
        assert {conflict.first, conflict.second} == {"payment/stripe", "payment/paypal"}
        assert loader.loaded == []
        assert not project_dir.exists()

    def test_invalid_recipe_is_rejected(self, orchestrator, workspace):
        data = recipe(workspace, "framework/nextjs")
        with pytest.raises(RecipeValidationError):
            orchestrator.run(data.with_modules(data.modules * 2))


def failing_registry(make_adapter):
    return AdapterRegistry(
        [
            make_adapter(
                "database", "db",
                actions=[{"type": "ENHANCE_FILE", "path": "missing.ts", "modifier": "ts-module-enhancer"}],
            ),
            make_adapter(
                "auth", "auth", requires=["db"],
                actions=[{"type": "ADD_CONTENT", "target": "auth.ts", "content": "auth"}],
            ),
            make_adapter(
                "feature", "teams", requires=["auth"],
                actions=[{"type": "ADD_CONTENT", "target": "teams.ts", "content": "teams"}],
            ),
            make_adapter(
                "ui", "ui",
                actions=[{"type": "ADD_CONTENT", "target": "ui.ts", "content": "ui"}],
            ),
        ]
    )


class TestFailureIsolation:
    """A failing module skips its dependents but not unrelated modules."""

    def test_dependents_are_skipped(self, make_adapter, workspace):
        orchestrator = ExecutionOrchestrator(failing_registry(make_adapter))
        report = orchestrator.run(recipe(workspace, "database/db", "auth/auth", "feature/teams", "ui/ui"))

        assert not report.success
        assert report.exit_code == 1
        assert report.failed_modules == ["database/db"]
        assert report.skipped_modules == ["auth/auth", "feature/teams"]
        assert report.result_for("auth/auth").skip_reason.endswith("'database/db' did not succeed")
        assert report.result_for("feature/teams").skip_reason.endswith("'database/db' did not succeed")
        assert report.result_for("ui/ui").success
        assert (workspace / "ui.ts").exists()
        assert not (workspace / "auth.ts").exists()

    def test_unknown_adapter_fails_only_its_module(self, builtin_registry, workspace):
        orchestrator = ExecutionOrchestrator(builtin_registry, executor=BlueprintExecutor())
        report = orchestrator.run(recipe(workspace, "cms/strapi", "testing/vitest"))
        assert report.result_for("cms/strapi").errors[0].code == "ADAPTER_NOT_FOUND"
        assert report.result_for("testing/vitest").success

    def test_invalid_parameters_fail_the_module(self, orchestrator, workspace):
        report = orchestrator.run(
            recipe(workspace, {"category": "payment", "id": "stripe", "parameters": {"currency": "jpy"}})
        )
        result = report.result_for("payment/stripe")
        assert result.errors[0].code == "INVALID_PARAMETER"
        assert result.files_written == []

    def test_unknown_parameters_are_warnings(self, orchestrator, workspace):
        report = orchestrator.run(
            recipe(workspace, {"category": "testing", "id": "vitest", "parameters": {"watch": True}})
        )
        assert report.success
        assert "UNKNOWN_PARAMETER" in [w.code for w in report.all_warnings()]

    def test_cancellation_stops_before_next_module(self, make_adapter, workspace):
        orchestrator = ExecutionOrchestrator(failing_registry(make_adapter))
        checks = []

        def should_cancel():
            checks.append(True)
            return len(checks) > 1

        report = orchestrator.run(recipe(workspace, "ui/ui", "database/db"), should_cancel=should_cancel)
        assert report.cancelled
        assert not report.success
        assert report.executed_modules == ["ui/ui"]
        assert report.skipped_modules == ["database/db"]


class TestPaths:
    """Path overrides flow from recipes and adapters into blueprints."""

    def test_monorepo_layout(self, orchestrator, workspace):
        report = orchestrator.run(recipe(workspace, "database/drizzle", structure="monorepo"))
        assert report.success
        assert (workspace / "packages/db/schema.ts").exists()
        assert (workspace / "packages/db/client.ts").exists()

    def test_user_override_is_reported(self, orchestrator, workspace):
        report = orchestrator.run(
            recipe(workspace, "database/drizzle", paths={"database_schema": "db/schema.ts"})
        )
        assert (workspace / "db/schema.ts").exists()
        overrides = [w for w in report.all_warnings() if w.code == "PATH_OVERRIDE"]
        assert len(overrides) == 1
        assert "by user" in overrides[0].message
        assert 'schema: "./db/schema.ts"' in (workspace / "drizzle.config.ts").read_text()

    def test_module_scoped_override(self, orchestrator, workspace):
        report = orchestrator.run(
            recipe(
                workspace,
                {"category": "payment", "id": "stripe", "paths": {"payment_config": "billing/stripe.ts"}},
                {"category": "testing", "id": "vitest"},
            )
        )
        assert report.success
        assert (workspace / "billing/stripe.ts").exists()

    def test_adapter_paths_are_shared(self, make_adapter, workspace):
        registry = AdapterRegistry(
            [
                make_adapter(
                    "database", "prisma", paths={"database_schema": "prisma/schema.ts"},
                    actions=[{"type": "ADD_CONTENT", "target": "{{paths.database_schema}}", "content": "model"}],
                ),
                make_adapter(
                    "auth", "auth", requires=["prisma"],
                    actions=[{"type": "ADD_CONTENT", "target": "auth.ts", "content": "// see {{paths.database_schema}}"}],
                ),
            ]
        )
        report = ExecutionOrchestrator(registry).run(recipe(workspace, "auth/auth", "database/prisma"))
        assert report.success
        assert (workspace / "prisma/schema.ts").read_text() == "model"
        assert (workspace / "auth.ts").read_text() == "// see prisma/schema.ts"
        auth_warnings = report.result_for("auth/auth").warnings
        assert "by adapter" in auth_warnings[0].message

    def test_template_variables(self, orchestrator, workspace):
        data = recipe(workspace, "testing/vitest", description="demo")
        item = orchestrator.prepare(data.modules[0])
        paths = orchestrator.build_path_resolver(data, [item])
        variables = orchestrator.template_variables(data, item, paths)
        assert variables["project.name"] == "shop"
        assert variables["project.description"] == "demo"
        assert variables["module.name"] == "Vitest"
        assert variables["module.parameters.coverage"] is False
        assert variables["paths.tests"] == "src/__tests__"
        assert variables["options.skip_git"] is False
