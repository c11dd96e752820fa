"""Run the Closure Compiler as a subprocess."""

from __future__ import annotations

import glob
import logging
import os
import subprocess
import tempfile
from collections.abc import Mapping, Sequence
from typing import Any

from closure_util.errors import SubprocessError

logger = logging.getLogger(__name__)

DEFAULT_JVM_FLAGS = ("-server", "-XX:+TieredCompilation")
COMPILER_GLOB = "*compiler*.jar"


def _quote(value: object) -> str:
    text = str(value).replace('"', '\\"')
    return f'"{text}"'


def flatten_flags(options: Mapping[str, Any]) -> list[str]:
    """Turn a compiler option mapping into command line flags.

    ``True`` becomes a bare ``--flag`` and ``False``/``None`` are dropped;
    lists repeat the flag once per value. Values are quoted for a flag file.
    """
    flags: list[str] = []
    for key, value in options.items():
        if isinstance(value, bool) or value is None:
            if value:
                flags.append(f"--{key}")
            continue
        values = value if isinstance(value, list | tuple) else [value]
        for item in values:
            flags.extend([f"--{key}", _quote(item)])
    return flags


def find_compiler(compiler_dir: str) -> str:
    """Return the single compiler jar under ``compiler_dir``.

    The jar name carries a version (``closure-compiler-v20160713.jar``), so
    it is located by pattern.
    """
    jars = sorted(glob.glob(os.path.join(compiler_dir, COMPILER_GLOB)))
    if len(jars) != 1:
        raise SubprocessError(f"No or more than one compiler found in {compiler_dir or '.'}")
    return jars[0]


def compile_scripts(
    options: Mapping[str, Any] | None = None,
    *,
    compiler_dir: str,
    cwd: str | None = None,
    jvm: Sequence[str] | None = None,
    java: str = "java",
) -> str:
    """Compile with the given flags and return the compiler's standard output.

    Raises:
        SubprocessError: No single compiler jar was found, or the compiler
            exited with a non-zero status.
    """
    jar = find_compiler(compiler_dir)
    args = [java, *(jvm if jvm is not None else DEFAULT_JVM_FLAGS), "-jar", jar]

    flag_file: str | None = None
    if options:
        handle = tempfile.NamedTemporaryFile(
            "w", prefix="compile-flags-", suffix=".txt", delete=False, encoding="utf-8"
        )
        with handle:
            handle.write(" ".join(flatten_flags(options)))
        flag_file = handle.name
        args.append(f"--flagfile={flag_file}")

    logger.debug("compile: %s", " ".join(args))
    try:
        proc = subprocess.run(
            args,
            cwd=cwd or os.getcwd(),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise SubprocessError(f"Failed to start compiler: {exc}") from exc
    finally:
        if flag_file is not None:
            os.unlink(flag_file)

    if proc.stderr:
        for line in proc.stderr.splitlines():
            logger.error("compile: %s", line)
    if proc.returncode != 0:
        raise SubprocessError(
            "Process exited with non-zero status, see log for more detail: "
            f"{proc.returncode}",
            returncode=proc.returncode,
        )
    return proc.stdout
