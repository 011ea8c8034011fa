#!/usr/bin/env python3
"""
Evaluation runner for the huffproc compressor.

This evaluation script:
- Runs pytest tests on the tests/ folder with huffproc/ on PYTHONPATH
- Collects individual test results with pass/fail status
- Measures compression on generated corpora and checks each round trip
- Generates a structured report with environment metadata

Run with:
    python evaluation/evaluation.py [--output PATH] [--sizes 1024,65536] [--skip-tests]
"""
import os
import sys
import json
import uuid
import random
import platform
import subprocess
import time
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
HUFFPROC_DIR = PROJECT_ROOT / "huffproc"


def generate_run_id():
    """Generate a short unique run ID."""
    return uuid.uuid4().hex[:8]


def get_git_info():
    """Get git commit and branch information."""
    git_info = {"git_commit": "unknown", "git_branch": "unknown"}
    for key, args in (
        ("git_commit", ["git", "rev-parse", "HEAD"]),
        ("git_branch", ["git", "rev-parse", "--abbrev-ref", "HEAD"]),
    ):
        try:
            result = subprocess.run(args, capture_output=True, text=True, timeout=5)
        except (OSError, subprocess.SubprocessError):
            continue
        if result.returncode == 0:
            value = result.stdout.strip()
            git_info[key] = value[:8] if key == "git_commit" else value
    return git_info


def get_environment_info():
    """Collect environment information for the report."""
    git_info = get_git_info()

    return {
        "python_version": platform.python_version(),
        "platform": platform.platform(),
        "os": platform.system(),
        "os_release": platform.release(),
        "architecture": platform.machine(),
        "hostname": platform.node(),
        "git_commit": git_info["git_commit"],
        "git_branch": git_info["git_branch"],
    }


def run_pytest_with_pythonpath(pythonpath, tests_dir, label):
    """
    Run pytest on the tests/ folder with specific PYTHONPATH.

    Args:
        pythonpath: The PYTHONPATH to use for the tests
        tests_dir: Path to the tests directory
        label: Label for this test run

    Returns:
        dict with test results
    """
    print(f"\n{'=' * 60}")
    print(f"RUNNING TESTS: {label.upper()}")
    print(f"{'=' * 60}")
    print(f"PYTHONPATH: {pythonpath}")
    print(f"Tests directory: {tests_dir}")

    cmd = [
        sys.executable, "-m", "pytest",
        str(tests_dir),
        "-v",
        "--tb=short",
    ]

    env = os.environ.copy()
    env["PYTHONPATH"] = pythonpath

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=str(Path(tests_dir).parent),
            env=env,
            timeout=600
        )
    except subprocess.TimeoutExpired:
        print("❌ Test execution timed out")
        return {
            "success": False,
            "exit_code": -1,
            "tests": [],
            "summary": {"error": "Test execution timed out"},
            "stdout": "",
            "stderr": "",
        }

    stdout = result.stdout
    stderr = result.stderr
    tests = parse_pytest_verbose_output(stdout)

    summary = {"total": len(tests)}
    for outcome in ("passed", "failed", "error", "skipped"):
        summary[outcome] = sum(1 for t in tests if t.get("outcome") == outcome)

    print(
        f"\nResults: {summary['passed']} passed, {summary['failed']} failed, "
        f"{summary['error']} errors, {summary['skipped']} skipped (total: {summary['total']})"
    )
    for test in tests:
        status_icon = {
            "passed": "✅",
            "failed": "❌",
            "error": "💥",
            "skipped": "⏭️"
        }.get(test.get("outcome"), "❓")
        print(f"  {status_icon} {test.get('nodeid', 'unknown')}: {test.get('outcome', 'unknown')}")

    return {
        "success": result.returncode == 0,
        "exit_code": result.returncode,
        "tests": tests,
        "summary": summary,
        "stdout": stdout[-3000:] if len(stdout) > 3000 else stdout,
        "stderr": stderr[-1000:] if len(stderr) > 1000 else stderr,
    }


def parse_pytest_verbose_output(output):
    """Parse pytest verbose output to extract test results."""
    tests = []
    status_words = {
        " PASSED": "passed",
        " FAILED": "failed",
        " ERROR": "error",
        " SKIPPED": "skipped",
    }

    for line in output.split('\n'):
        line_stripped = line.strip()

        # Match lines like: tests/test_huffman_service.py::test_small_inputs PASSED
        if '::' not in line_stripped:
            continue
        for status_word, outcome in status_words.items():
            if status_word in line_stripped:
                nodeid = line_stripped.split(status_word)[0].strip()
                tests.append({
                    "nodeid": nodeid,
                    "name": nodeid.split("::")[-1],
                    "outcome": outcome,
                })
                break

    return tests


def generate_corpora(size, seed=0):
    """Sample inputs with very different symbol statistics."""
    rng = random.Random(seed)
    words = [b"huffman", b"tree", b"header", b"bit", b"stream", b"the", b"a", b"of"]
    text = bytearray()
    while len(text) < size:
        text += rng.choice(words) + b" "
    return {
        "empty": b"",
        "single_byte": b"A" * size,
        "uniform": bytes(rng.getrandbits(8) for _ in range(size)),
        "skewed": bytes(min(255, int(rng.expovariate(0.1))) for _ in range(size)),
        "text": bytes(text[:size]),
    }


def run_compression_table(sizes):
    """Compress each corpus, verify the round trip, and record sizes and timings."""
    if str(HUFFPROC_DIR) not in sys.path:
        sys.path.insert(0, str(HUFFPROC_DIR))
    from huffman_service import HuffmanService

    print(f"\n{'=' * 60}")
    print("COMPRESSION TABLE")
    print(f"{'=' * 60}")

    svc = HuffmanService()
    rows = []
    for size in sizes:
        for name, data in generate_corpora(size).items():
            t0 = time.perf_counter()
            compressed = svc.compress_bytes(data)
            t1 = time.perf_counter()
            restored = svc.decompress_bytes(compressed)
            t2 = time.perf_counter()
            row = {
                "corpus": name,
                "size": len(data),
                "compressed_size": len(compressed),
                "ratio": round(len(compressed) / len(data), 4) if data else None,
                "compress_seconds": round(t1 - t0, 6),
                "decompress_seconds": round(t2 - t1, 6),
                "roundtrip_ok": restored == data,
            }
            rows.append(row)
            ratio = f"{row['ratio']:.3f}" if row["ratio"] is not None else "  -  "
            icon = "✅" if row["roundtrip_ok"] else "❌"
            print(f"  {icon} {name:<12} {len(data):>9} -> {len(compressed):>9} bytes  ratio {ratio}")
    return rows


def run_evaluation(sizes, skip_tests=False):
    """
    Run the test suite and the compression table.

    Returns dict with test results and per-corpus measurements.
    """
    print(f"\n{'=' * 60}")
    print("HUFFPROC EVALUATION")
    print(f"{'=' * 60}")

    if skip_tests:
        test_results = {"success": True, "skipped": True, "tests": [], "summary": {}}
    else:
        test_results = run_pytest_with_pythonpath(
            str(HUFFPROC_DIR), PROJECT_ROOT / "tests", "huffproc"
        )
    compression = run_compression_table(sizes)
    roundtrips_ok = all(row["roundtrip_ok"] for row in compression)

    print(f"\n{'=' * 60}")
    print("EVALUATION SUMMARY")
    print(f"{'=' * 60}")
    print(f"  Tests: {'✅ PASSED' if test_results.get('success') else '❌ FAILED'}")
    print(f"  Round trips: {'✅ OK' if roundtrips_ok else '❌ MISMATCH'}")

    return {
        "tests": test_results,
        "compression": compression,
        "success": bool(test_results.get("success")) and roundtrips_ok,
    }


def generate_output_path():
    """Generate output path in format: evaluation/YYYY-MM-DD/HH-MM-SS/report.json"""
    now = datetime.now()
    output_dir = PROJECT_ROOT / "evaluation" / now.strftime("%Y-%m-%d") / now.strftime("%H-%M-%S")
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / "report.json"


def parse_sizes(value):
    return [int(part) for part in value.split(",") if part.strip()]


def main():
    """Main entry point for evaluation."""
    import argparse

    parser = argparse.ArgumentParser(description="Run huffproc evaluation")
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output JSON file path (default: evaluation/YYYY-MM-DD/HH-MM-SS/report.json)"
    )
    parser.add_argument(
        "--sizes",
        type=parse_sizes,
        default=[1024, 64 * 1024],
        help="Comma separated corpus sizes in bytes (default: 1024,65536)"
    )
    parser.add_argument(
        "--skip-tests",
        action="store_true",
        help="Only build the compression table"
    )

    args = parser.parse_args()

    run_id = generate_run_id()
    started_at = datetime.now()

    print(f"Run ID: {run_id}")
    print(f"Started at: {started_at.isoformat()}")

    try:
        results = run_evaluation(args.sizes, skip_tests=args.skip_tests)
        success = results["success"]
        error_message = None if success else "Tests failed or a round trip did not match"
    except Exception as e:
        import traceback
        print(f"\nERROR: {str(e)}")
        traceback.print_exc()
        results = None
        success = False
        error_message = str(e)

    finished_at = datetime.now()
    duration = (finished_at - started_at).total_seconds()

    report = {
        "run_id": run_id,
        "started_at": started_at.isoformat(),
        "finished_at": finished_at.isoformat(),
        "duration_seconds": round(duration, 6),
        "success": success,
        "error": error_message,
        "environment": get_environment_info(),
        "results": results,
    }

    output_path = Path(args.output) if args.output else generate_output_path()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(report, f, indent=2)
    print(f"\n✅ Report saved to: {output_path}")

    print(f"\n{'=' * 60}")
    print("EVALUATION COMPLETE")
    print(f"{'=' * 60}")
    print(f"Run ID: {run_id}")
    print(f"Duration: {duration:.2f}s")
    print(f"Success: {'✅ YES' if success else '❌ NO'}")

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
