"""Compile a project's scripts, in dependency order, into one output file."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from closure_util.compile import compile_scripts
from closure_util.config import Settings
from closure_util.deps.manager import Manager
from closure_util.deps.script import ScriptRole
from closure_util.project import ProjectConfig

logger = logging.getLogger(__name__)


def build_inputs(manager: Manager) -> list[str]:
    """Script paths to compile: each main's dependencies, or the whole library."""
    mains = [script for script in manager.get_scripts() if script.role is ScriptRole.MAIN]
    if not mains:
        return [script.path for script in manager.get_dependencies()]
    paths: dict[str, None] = {}
    for main in mains:
        for script in manager.get_dependencies(main.path):
            paths.setdefault(script.path, None)
    return list(paths)


async def load_manager(project: ProjectConfig, settings: Settings) -> Manager:
    manager = Manager(project.manager_config(settings, watch=False))
    await manager.start()
    return manager


def build(project: ProjectConfig, settings: Settings, output: Path) -> Path:
    """Resolve, compile and write ``output``; returns the written path."""
    manager = asyncio.run(load_manager(project, settings))
    try:
        inputs = build_inputs(manager)
    finally:
        manager.close()
    logger.info("Compiling %d scripts", len(inputs))

    options = dict(project.compile)
    existing = options.get("js") or []
    if isinstance(existing, str):
        existing = [existing]
    options["js"] = [*existing, *inputs]

    compiled = compile_scripts(
        options,
        compiler_dir=settings.compiler_dir,
        cwd=project.cwd,
        jvm=project.jvm if project.jvm is not None else settings.jvm_flags,
        java=settings.java,
    )
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(compiled, encoding="utf-8")
    logger.info("Wrote %s", output)
    return output
