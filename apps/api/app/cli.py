from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Callable

from app.client.poller import (
    PollerSettings,
    QuizClient,
    StatusPoller,
    SubmissionError,
    TaskStatusPayload,
)
from app.client.session import OPTION_LETTERS, QuizSession
from app.core.config import settings

DEFAULT_BASE_URL = f"http://localhost:{settings.port}"


def _print_progress(payload: TaskStatusPayload) -> None:
    sys.stdout.write(f"[{payload.progress:3d}%] {payload.status_text}\n")
    sys.stdout.flush()


def run_quiz_session(session: QuizSession, ask: Callable[[str], str] = input) -> None:
    """Ask every question on stdin, then print score + review."""
    for i, q in enumerate(session.quiz.questions):
        session.go_to(i)
        sys.stdout.write(f"\nQuestion {i + 1} of {session.total}\n{q.question}\n")
        for j, opt in enumerate(q.options):
            sys.stdout.write(f"  {OPTION_LETTERS[j]}) {opt}\n")
        while True:
            raw = ask("Your answer (A-D): ").strip().upper()
            if len(raw) == 1 and raw in OPTION_LETTERS:
                session.select(OPTION_LETTERS.index(raw))
                break
            sys.stdout.write("Please answer with A, B, C or D.\n")

    result = session.score()
    sys.stdout.write(
        f"\nQuiz complete! {result.score}/{result.total} "
        f"({result.percentage:.1f}%) Grade: {result.grade}\n{result.message}\n\n"
    )
    sys.stdout.write("\n".join(session.review_lines()) + "\n")


async def _quiz(args: argparse.Namespace) -> int:
    async with QuizClient(args.base_url) as client:
        try:
            task_id = await client.submit(args.url)
        except SubmissionError as exc:
            sys.stderr.write(f"error: {exc}\n")
            return 1

        sys.stdout.write(f"Quiz generation started (task {task_id}).\n")
        poller = StatusPoller(client, PollerSettings(initial_delay_sec=args.initial_delay))
        outcome = await poller.poll(task_id, on_update=_print_progress)

    if outcome.state != "completed" or outcome.quiz is None:
        sys.stderr.write(f"error: {outcome.error}\n")
        return 1

    run_quiz_session(QuizSession(outcome.quiz))
    return 0


async def _extract(args: argparse.Namespace) -> int:
    async with QuizClient(args.base_url) as client:
        try:
            text = await client.extract_transcript(args.url)
        except SubmissionError as exc:
            sys.stderr.write(f"error: {exc}\n")
            return 1
    sys.stdout.write(text + "\n")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("app.main:app", host=args.host, port=args.port, log_config=None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quizgen", description="Generate quizzes from YouTube videos")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the quiz API server")
    p_serve.add_argument("--host", default=settings.host)
    p_serve.add_argument("--port", type=int, default=settings.port)

    p_quiz = sub.add_parser("quiz", help="Generate a quiz for a video and take it in the terminal")
    p_quiz.add_argument("url")
    p_quiz.add_argument("--base-url", default=DEFAULT_BASE_URL)
    p_quiz.add_argument("--initial-delay", type=float, default=PollerSettings.initial_delay_sec)

    p_extract = sub.add_parser("extract", help="Print the cleaned transcript of a video")
    p_extract.add_argument("url")
    p_extract.add_argument("--base-url", default=DEFAULT_BASE_URL)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "serve":
        return _serve(args)
    if args.command == "quiz":
        return asyncio.run(_quiz(args))
    return asyncio.run(_extract(args))


if __name__ == "__main__":
    raise SystemExit(main())
