# formgen_core/cli.py
"""
CLI for the form generation pipeline.

Usage:
    formgen "wedding rsvp with meal preference and plus one"
    formgen "5 question trivia quiz" --questions 5 --output quiz.json
    formgen "product feedback survey" --reference-file product.txt --sequential

Output:
    - Console panels and tables for the generated form and pipeline record
    - Optional JSON file with the camelCase payload
"""
import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv
from rich.logging import RichHandler

from formgen_core.config import get_api_keys, load_config
from formgen_core.display import console, display_form
from formgen_core.exceptions import PipelineError
from formgen_core.pipeline import PipelineOptions, build_completer
from formgen_core.api import generate_form


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def main():
    """Main CLI entry point."""
    load_dotenv()
    parser = argparse.ArgumentParser(
        description="Generate a form, quiz or survey schema from a prompt",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    formgen "contact form for a dental clinic"
    formgen "5 question trivia quiz" --questions 5 --output quiz.json
        """
    )
    parser.add_argument("content", help="What the form should be (prompt or pasted content)")
    parser.add_argument("--questions", type=int, help="Exact number of questions (1-120)")
    parser.add_argument("--context", help="Additional user context")
    parser.add_argument("--reference-file", help="Text file with reference material for the form")
    parser.add_argument("--config", default="config.yaml", help="Config file path")
    parser.add_argument("--output", help="Write the JSON payload to this file")
    parser.add_argument("--skip-optimization", action="store_true", help="Skip field type optimization")
    parser.add_argument("--skip-enhancement", action="store_true", help="Skip question enhancement")
    parser.add_argument("--sequential", action="store_true", help="Run optimization stages sequentially")
    parser.add_argument("--tone", choices=["professional", "friendly", "casual", "formal"])
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging("debug" if args.debug else config.get("logging", {}).get("level", "INFO"))

    reference_data = None
    if args.reference_file:
        if not os.path.exists(args.reference_file):
            console.print(f"[red]Error: Reference file not found: {args.reference_file}[/red]")
            sys.exit(1)
        with open(args.reference_file, "r", encoding="utf-8") as f:
            reference_data = f.read()

    api_keys = get_api_keys()
    if not any(api_keys.values()):
        console.print("[red]Error: no LLM API key set (GOOGLE_API_KEY, GROQ_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY)[/red]")
        sys.exit(1)

    options = PipelineOptions.from_config(config)
    options.skip_field_optimization = options.skip_field_optimization or args.skip_optimization
    options.skip_question_enhancement = options.skip_question_enhancement or args.skip_enhancement
    if args.sequential:
        options.parallel_optimization = False
    if args.tone:
        options.tone = args.tone

    try:
        form = asyncio.run(generate_form(
            args.content,
            reference_data=reference_data,
            user_context=args.context,
            question_count=args.questions,
            options=options,
            completer=build_completer(config, api_keys),
            config=config,
        ))
    except PipelineError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    display_form(form)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(form.to_payload(), f, indent=2)
        console.print(f"\n[green]✓ Saved payload to {args.output}[/green]")


if __name__ == "__main__":
    main()
