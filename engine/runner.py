"""
CLI runner for the AEM rules engine.

This module provides the main CLI entry point for loading the Java adapter,
parsing files, running rules, and outputting results.
"""

import argparse
import concurrent.futures
import dataclasses
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional, Tuple

from .config import EngineConfig, apply_rule_params, find_config_file, get_rule_severity, load_config
from .errors import RuleConfigurationError
from .registry import discover_rules, get_adapter, get_adapter_for_file, get_enabled_rules, load_default_adapters
from .types import Finding, RuleContext

logger = logging.getLogger(__name__)

DEFAULT_RULE_PACKAGES = ["rules"]


def setup_adapters() -> None:
    """Set up and register language adapters."""
    try:
        load_default_adapters()
    except ImportError as e:
        print(f"Warning: Could not load Java adapter: {e}", file=sys.stderr)


def collect_files(paths: List[str], language: str = "java") -> List[str]:
    """Collect files to analyze based on paths and the language's adapter."""
    adapter = get_adapter(language)
    if not adapter:
        print(f"Error: No adapter found for language '{language}'", file=sys.stderr)
        return []

    for path in paths:
        if not os.path.exists(path):
            print(f"Warning: Path '{path}' does not exist", file=sys.stderr)

    return adapter.list_files(paths)


def analyze_file(file_path: str, rules: List, config: EngineConfig,
                 content: Optional[str] = None) -> Tuple[List[Finding], float]:
    """Analyze a single file and return findings and parse time.

    Args:
        file_path: Path to the file (used for context even if content is provided)
        rules: Rules to run
        config: Engine configuration
        content: Optional file content (if None, reads from disk)
    """
    adapter = get_adapter_for_file(file_path)
    if not adapter:
        return [], 0.0

    try:
        if content is None:
            with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
                content = f.read()
    except OSError as e:
        print(f"Warning: Failed to read {file_path}: {e}", file=sys.stderr)
        return [], 0.0

    parse_start = time.time()
    tree = adapter.parse(content)
    parse_time = (time.time() - parse_start) * 1000
    if tree is None:
        print(f"Warning: Failed to parse {file_path}", file=sys.stderr)
        return [], parse_time

    context = RuleContext(file_path=file_path, text=content, tree=tree)

    findings = []
    for rule in rules:
        if adapter.language_id not in rule.meta.langs:
            continue
        try:
            rule_findings = list(rule.visit(context))
        except Exception as e:
            # Isolated per rule and file
            logger.exception(f"Rule '{rule.key}' failed on {file_path}: {e}")
            continue

        for finding in rule_findings:
            severity = get_rule_severity(finding.rule, config, finding.severity)
            if severity != finding.severity:
                finding = dataclasses.replace(finding, severity=severity)
            findings.append(finding)

        if len(findings) >= config.max_findings_per_file:
            findings = findings[:config.max_findings_per_file]
            break

    return findings, parse_time


def run_analysis(files: List[str], rules: List, config: EngineConfig,
                 jobs: int = 1) -> Tuple[List[Finding], float]:
    """Run analysis on files, in parallel when ``jobs`` > 1.

    Findings are returned in file order whatever the number of jobs.
    """
    all_findings = []
    total_parse_time = 0.0

    if jobs <= 1:
        results = (analyze_file(file_path, rules, config) for file_path in files)
        for findings, parse_time in results:
            all_findings.extend(findings)
            total_parse_time += parse_time
        return all_findings, total_parse_time

    with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = [executor.submit(analyze_file, file_path, rules, config) for file_path in files]
        for future in futures:
            findings, parse_time = future.result()
            all_findings.extend(findings)
            total_parse_time += parse_time

    return all_findings, total_parse_time


def findings_to_json(findings: List[Finding]) -> List[Dict[str, Any]]:
    return [
        {
            "rule": f.rule,
            "message": f.message,
            "file": f.file,
            "start_byte": f.start_byte,
            "end_byte": f.end_byte,
            "line": f.line,
            "column": f.column,
            "severity": f.severity,
        }
        for f in findings
    ]


def format_output(findings: List[Finding], files_count: int, rules_count: int,
                  metrics: Dict[str, float], format_type: str) -> str:
    """Format output according to specified format."""
    if format_type == "json":
        output = {
            "files_scanned": files_count,
            "rules_run": rules_count,
            "findings": findings_to_json(findings),
            "metrics": metrics,
        }
        return json.dumps(output, indent=2)

    elif format_type == "pretty":
        lines = [
            f"Scanned {files_count} files with {rules_count} rules",
            f"Found {len(findings)} issues",
            "",
        ]

        by_file: Dict[str, List[Finding]] = {}
        for finding in findings:
            by_file.setdefault(finding.file, []).append(finding)

        for file_path, file_findings in sorted(by_file.items()):
            lines.append(file_path)
            for finding in file_findings:
                lines.append(f"  {finding.line}:{finding.column} [{finding.severity}] "
                             f"{finding.message} ({finding.rule})")
            lines.append("")

        lines.append("Metrics:")
        lines.append(f"  Parse time: {metrics['parse_ms']:.1f}ms")
        lines.append(f"  Rules time: {metrics['rules_ms']:.1f}ms")
        lines.append(f"  Total time: {metrics['total_ms']:.1f}ms")

        return "\n".join(lines)

    else:
        raise ValueError(f"Unknown format: {format_type}")


def prepare_rules(rule_patterns: List[str], config: EngineConfig,
                  discovery_packages: Optional[List[str]] = None) -> List:
    """Discover rules, select the enabled ones and apply configured parameters.

    ``rule_patterns`` wins over ``config.enabled_rules`` when given.

    Raises:
        RuleConfigurationError: a configured parameter is rejected
    """
    discover_rules(discovery_packages or DEFAULT_RULE_PACKAGES)
    patterns = rule_patterns or config.enabled_rules
    rules = get_enabled_rules(patterns, "java")
    apply_rule_params(rules, config)
    return rules


def analyze_paths(paths: List[str], rule_patterns: Optional[List[str]] = None,
                  config_path: Optional[str] = None, jobs: int = 1,
                  discovery_packages: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Library function to analyze paths with the Java rules.

    Returns:
        Dict with ``files`` (analyzed paths), ``rules`` (keys run) and
        ``findings`` (Finding records)
    """
    setup_adapters()
    if not config_path and paths:
        config_path = find_config_file(paths[0])
    config = load_config(config_path)

    rules = prepare_rules(rule_patterns or [], config, discovery_packages)
    files = collect_files(paths)
    findings, _ = run_analysis(files, rules, config, jobs)
    return {
        "files": files,
        "rules": [rule.key for rule in rules],
        "findings": findings,
    }


def list_rules() -> str:
    """JSON dump of the definitions of the rule catalogue."""
    from rules import create_repository

    repository = create_repository()
    return json.dumps([definition.to_dict() for definition in repository.rules], indent=2)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Static analysis rules for AEM Java code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m engine.runner --paths src/ --format pretty
  python -m engine.runner --paths core/src --rules "AEM-12" --jobs 4
  python -m engine.runner --list-rules
        """
    )

    parser.add_argument(
        "--paths",
        nargs="+",
        help="Paths to files or directories to analyze"
    )

    parser.add_argument(
        "--rules",
        default="",
        help="Comma-separated rule keys or patterns to run (default: all, or enabled_rules from config)"
    )

    parser.add_argument(
        "--discover",
        default=",".join(DEFAULT_RULE_PACKAGES),
        help="Comma-separated packages to discover rules from (default: rules)"
    )

    parser.add_argument(
        "--jobs",
        type=int,
        default=0,
        help="Number of parallel jobs (0=auto, 1=sequential, N=parallel)"
    )

    parser.add_argument(
        "--format",
        choices=["json", "pretty"],
        default="json",
        help="Output format: json or pretty (human-readable)"
    )

    parser.add_argument(
        "--config",
        help="Path to configuration file"
    )

    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="Print the rule definitions as JSON and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.list_rules:
        print(list_rules())
        return 0

    if not args.paths:
        parser.error("--paths is required unless --list-rules is given")

    total_start = time.time()

    setup_adapters()

    config_path = args.config or find_config_file(args.paths[0])
    config = load_config(config_path)

    if args.verbose:
        print(f"Using config: {config_path or 'defaults'}", file=sys.stderr)

    rule_patterns = [pattern.strip() for pattern in args.rules.split(",") if pattern.strip()]
    discovery_packages = [pkg.strip() for pkg in args.discover.split(",") if pkg.strip()]
    try:
        rules = prepare_rules(rule_patterns, config, discovery_packages)
    except RuleConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.verbose:
        print(f"Running {len(rules)} rules: {[r.key for r in rules]}", file=sys.stderr)

    files = collect_files(args.paths)

    if args.verbose:
        print(f"Found {len(files)} files to analyze", file=sys.stderr)

    if not files:
        print("No files found to analyze", file=sys.stderr)
        return 1

    jobs = args.jobs
    if jobs == 0:
        jobs = min(4, len(files), os.cpu_count() or 1)

    rules_start = time.time()
    findings, parse_time_ms = run_analysis(files, rules, config, jobs)
    rules_time_ms = (time.time() - rules_start) * 1000
    total_time_ms = (time.time() - total_start) * 1000

    metrics = {
        "parse_ms": parse_time_ms,
        "rules_ms": rules_time_ms,
        "total_ms": total_time_ms,
    }

    print(format_output(findings, len(files), len(rules), metrics, args.format))
    return 0


if __name__ == "__main__":
    sys.exit(main())
