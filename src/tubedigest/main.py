"""Main entry point for the application."""

import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

from .credential_store import CredentialStore
from .exceptions import ConfigurationMissing, DocumentUnavailable, UnknownModelError
from .models import DEFAULT_MODEL_ID, ModelCatalogue
from .openrouter_client import OpenRouterClient
from .prompts import SUMMARY_MARKDOWN_TEMPLATE
from .session import SummarySession
from .state import Error, Loading, Retrying, SessionState, Success
from .youtube_client import YoutubeClient, extract_video_id, format_duration

load_dotenv()

API_KEY_ENV = "OPENROUTER_API_KEY"


def print_state(state: SessionState) -> None:
    """Print a summary state transition."""
    if isinstance(state, Loading):
        print("Generating summaries...")
    elif isinstance(state, Retrying):
        waiting = []
        if state.retrying_short:
            waiting.append("short")
        if state.retrying_detailed:
            waiting.append("detailed")
        print(f"  {state.message}")
        print(f"  Retry #{state.attempt_number} pending for: {', '.join(waiting)}")
        if state.partial_short:
            print("  ✓ Short summary already received")
        if state.partial_detailed:
            print("  ✓ Detailed summary already received")
    elif isinstance(state, Error):
        print(f"Error: {state.message}")


def save_outputs(url: str, youtube: YoutubeClient, session: SummarySession, result: Success) -> str:
    """Write transcript and summaries to output_<video_id>/ and return the folder."""
    video_id = extract_video_id(url)
    output_folder = f"output_{video_id}"
    os.makedirs(output_folder, exist_ok=True)

    metadata = youtube.get_video_metadata(video_id, url)
    summary_markdown = SUMMARY_MARKDOWN_TEMPLATE.format(
        title=metadata["title"],
        channel=metadata["channel"],
        duration=format_duration(metadata["duration"]),
        url=metadata["url"],
        short_summary=result.short_summary,
        detailed_summary=result.detailed_summary,
    )
    with open(f"{output_folder}/summary.md", "w", encoding="utf-8") as f:
        f.write(summary_markdown)
    if session.video_context.transcript:
        with open(f"{output_folder}/transcript.txt", "w", encoding="utf-8") as f:
            f.write(session.video_context.transcript)
    return output_folder


def build_session(verbose: bool = False):
    store = CredentialStore(env_fallback=API_KEY_ENV)
    youtube = YoutubeClient()
    client = OpenRouterClient(verbose=verbose)
    session = SummarySession(youtube, client, store, verbose=verbose)
    return session, youtube, client, store


async def summarize_video(session: SummarySession, youtube: YoutubeClient, url: str, model: str) -> bool:
    """Run both summaries for a video, printing progress. Returns True on success."""
    print("Welcome to tubedigest!")
    print(f"Summarising video: {url}")

    unsubscribe = session.state.subscribe(print_state)
    try:
        result = await session.process_video(url, model)
    finally:
        unsubscribe()

    if not isinstance(result, Success):
        return False

    print("\n## Short Summary\n")
    print(result.short_summary)
    print("\n## Detailed Summary\n")
    print(result.detailed_summary)

    try:
        output_folder = save_outputs(url, youtube, session, result)
        print(f"\nSummary saved to {output_folder}/summary.md")
    except (OSError, DocumentUnavailable) as e:
        print(f"Warning: Could not save summary: {e}")
    return True


async def chat_loop(session: SummarySession) -> None:
    print("Type your questions (or '/exit' to quit, '/help' for help)\n")
    while True:
        try:
            query = (await asyncio.to_thread(input, "You: ")).strip()
        except EOFError:
            break

        if not query:
            continue

        if query.lower() in ["/exit", "/quit"]:
            break
        elif query.lower() == "/help":
            print("Commands:")
            print("  /exit or /quit - Exit chat")
            print("  /clear - Forget the video and the conversation")
            print("  /help - Show this help")
            continue
        elif query.lower() == "/clear":
            session.clear_all()
            print("Cleared video context and chat history.\n")
            continue

        response = await session.send_chat_message(query)
        print(f"\nAssistant: {response}")
        if session.token_usage.value:
            print(f"  {session.token_usage.value}")
        print()

    print("Goodbye!")


async def run_command(args) -> int:
    session, youtube, client, store = build_session(verbose=args.verbose)
    try:
        ModelCatalogue().lookup(args.model)
        session.set_selected_model(args.model)
        ok = await summarize_video(session, youtube, args.url, args.model)
        if args.command == "chat":
            if not ok:
                print("Continuing without summaries; the assistant will only see what was loaded.\n")
            await chat_loop(session)
            return 0
        return 0 if ok else 1
    except (ConfigurationMissing, UnknownModelError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        session.clear_all()
        await client.close()
        store.close()


def list_models() -> None:
    for model in ModelCatalogue().all():
        print(
            f"{model.id:<50} {model.name:<45} {model.context_length:>10,} tokens  "
            f"${model.input_price:.2f}/${model.output_price:.2f} per 1M"
        )


def main():
    """Main entry point with subcommands."""
    parser = argparse.ArgumentParser(
        description="tubedigest - Summarise and chat about YouTube videos",
        prog="tubedigest",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in [("summarize", "Summarise a YouTube video"), ("chat", "Summarise a video, then chat about it")]:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("url", help="YouTube video URL")
        sub.add_argument("-m", "--model", default=DEFAULT_MODEL_ID, help=f"OpenRouter model id (default: {DEFAULT_MODEL_ID})")
        sub.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    key_parser = subparsers.add_parser("set-key", help="Store your OpenRouter API key")
    key_parser.add_argument("key", help="OpenRouter API key")

    subparsers.add_parser("models", help="List available models")

    args = parser.parse_args()

    if args.command in ("summarize", "chat"):
        try:
            sys.exit(asyncio.run(run_command(args)))
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
    elif args.command == "set-key":
        with CredentialStore() as store:
            store.set(args.key)
        print("API key saved.")
    elif args.command == "models":
        list_models()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
