"""
Reproducibility locks for run manifests.

Writes a run_manifest.json per run containing:
  - git commit hash, python version, platform
  - full config snapshot
  - input dataset row counts / checksums
  - SHA-256 of every output frame, so a re-run can be checked bit for bit
"""
from __future__ import annotations

import hashlib
import json
import platform
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd


def _get_git_commit() -> str:
    """Return the current git commit hash, or 'unknown' if not in a repo."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True, text=True, timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, ValueError, subprocess.SubprocessError):
        pass
    return "unknown"


def _dataframe_checksum(df: pd.DataFrame) -> str:
    """Compute a lightweight checksum of a DataFrame's shape and sample."""
    h = hashlib.md5()
    h.update(f"shape={df.shape}".encode())
    h.update(f"cols={sorted(str(c) for c in df.columns)}".encode())
    if len(df) > 0:
        h.update(df.iloc[0].to_json().encode())
        h.update(df.iloc[-1].to_json().encode())
    return h.hexdigest()[:12]


def frame_sha256(df: pd.DataFrame) -> str:
    """SHA-256 over every value, the index and the column labels of ``df``."""
    h = hashlib.sha256()
    h.update(f"cols={[str(c) for c in df.columns]}".encode())
    h.update(pd.util.hash_pandas_object(df, index=True).to_numpy().tobytes())
    return h.hexdigest()


def _safe_config(config_snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """Convert non-serializable config values."""
    safe: Dict[str, Any] = {}
    for k, v in config_snapshot.items():
        if isinstance(v, Path):
            safe[k] = str(v)
        elif isinstance(v, (str, int, float, bool, list, dict, type(None))):
            safe[k] = v
        else:
            safe[k] = repr(v)
    return safe


def build_run_manifest(
    run_type: str,
    config_snapshot: Dict[str, Any],
    datasets: Optional[Dict[str, pd.DataFrame]] = None,
    outputs: Optional[Dict[str, pd.DataFrame]] = None,
    extra: Optional[Dict[str, Any]] = None,
    script_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a reproducibility manifest for an engine run.

    Args:
        run_type: Type of run (e.g., "ai", "regime").
        config_snapshot: Full config dict to capture.
        datasets: Optional dict of name -> input DataFrame for row counts/checksums.
        outputs: Optional dict of name -> output DataFrame; each gets a full SHA-256.
        extra: Additional metadata to include.
        script_name: Name of the entry-point script (e.g. "run_supertrend").
    """
    manifest: Dict[str, Any] = {
        "run_type": run_type,
        "script": script_name or run_type,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "git_commit": _get_git_commit(),
        "python_version": sys.version,
        "platform": platform.platform(),
    }

    manifest["config"] = _safe_config(config_snapshot)

    # Dataset metadata
    if datasets:
        ds_meta: Dict[str, Any] = {}
        for name, df in datasets.items():
            ds_meta[name] = {
                "rows": len(df),
                "columns": len(df.columns),
                "checksum": _dataframe_checksum(df),
            }
        manifest["datasets"] = ds_meta

    if outputs:
        manifest["outputs"] = {
            name: {"rows": len(df), "sha256": frame_sha256(df)}
            for name, df in outputs.items()
        }

    if extra:
        manifest["extra"] = extra

    return manifest


def write_run_manifest(
    manifest: Dict[str, Any],
    output_dir: Path,
    filename: Optional[str] = None,
) -> Path:
    """Write manifest to JSON file. Returns the output path.

    When *filename* is ``None`` (the default), a timestamped filename is
    generated so that successive runs never overwrite each other.  A
    ``run_manifest_latest.json`` symlink is also created/updated for
    convenience.
    """
    if filename is None:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"run_manifest_{ts}.json"
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    with open(path, "w") as f:
        json.dump(manifest, f, indent=2, default=str)
    # Also write/overwrite a "latest" symlink for convenience
    latest = output_dir / "run_manifest_latest.json"
    try:
        if latest.is_symlink() or latest.exists():
            latest.unlink()
        latest.symlink_to(path.name)
    except OSError:
        pass  # Symlinks may not be supported on all platforms
    return path


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def verify_manifest(
    manifest_path: Path,
    config_snapshot: Optional[Dict[str, Any]] = None,
    outputs: Optional[Dict[str, pd.DataFrame]] = None,
) -> Dict[str, Any]:
    """Verify a re-run against a stored manifest.

    Checks:
        1. Git commit matches the one recorded in the manifest.
        2. Config snapshot matches (when *config_snapshot* is provided).
        3. Output SHA-256 digests match (when *outputs* is provided and the
           manifest recorded the same output names).

    Parameters
    ----------
    manifest_path : Path
        Path to a previously written ``run_manifest.json``.
    config_snapshot : dict, optional
        Current config dict to compare against the stored config.
    outputs : dict, optional
        Output frames of the re-run, keyed as in the original manifest.

    Returns
    -------
    dict
        ``{git_match: bool, config_match: bool, output_match: bool,
        mismatches: [...]}``.
    """
    manifest_path = Path(manifest_path)
    if not manifest_path.exists():
        return {
            "git_match": False,
            "config_match": False,
            "output_match": False,
            "mismatches": [f"Manifest file not found: {manifest_path}"],
        }

    with open(manifest_path, "r") as f:
        stored = json.load(f)

    mismatches: List[str] = []

    # ── Git commit ──
    current_commit = _get_git_commit()
    stored_commit = stored.get("git_commit", "unknown")
    git_match = (
        current_commit == stored_commit
        or current_commit == "unknown"
        or stored_commit == "unknown"
    )
    if not git_match:
        mismatches.append(
            f"Git commit mismatch: current={current_commit[:12]}, "
            f"stored={stored_commit[:12]}"
        )

    # ── Config ──
    config_match = True
    if config_snapshot is not None:
        stored_config = stored.get("config", {})
        # Round-trip through JSON so tuples and lists compare equal
        safe_current = json.loads(json.dumps(_safe_config(config_snapshot), default=str))
        for key in sorted(set(stored_config) | set(safe_current)):
            stored_val = stored_config.get(key)
            current_val = safe_current.get(key)
            if stored_val != current_val:
                config_match = False
                mismatches.append(
                    f"Config mismatch on '{key}': "
                    f"stored={stored_val!r}, current={current_val!r}"
                )

    # ── Output digests ──
    output_match = True
    stored_outputs = stored.get("outputs", {})
    if outputs:
        for name, df in outputs.items():
            if name not in stored_outputs:
                output_match = False
                mismatches.append(f"Output '{name}' not recorded in manifest")
                continue
            current_digest = frame_sha256(df)
            stored_digest = stored_outputs[name].get("sha256", "")
            if current_digest != stored_digest:
                output_match = False
                mismatches.append(
                    f"Output digest mismatch for '{name}': "
                    f"stored={stored_digest[:12]}, current={current_digest[:12]}"
                )

    return {
        "git_match": git_match,
        "config_match": config_match,
        "output_match": output_match,
        "mismatches": mismatches,
    }
