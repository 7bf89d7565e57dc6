#!/usr/bin/env python3
"""Command line entry point: interactive chat, example walkthrough, model listing."""

import argparse
import asyncio
import logging
import sys

from ai_wrapper.cli.session import ChatSession
from ai_wrapper.config.settings import Settings, get_settings
from ai_wrapper.core.errors import WrapperError
from ai_wrapper.core.logging import configure_logging
from ai_wrapper.main import build_service
from ai_wrapper.models.chat import ChatRequest, Message
from ai_wrapper.services.chat_service import ChatService

logger = logging.getLogger("aiw.cli")

QUIT_COMMANDS = {"/quit", "/exit"}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ai-wrapper")
    parser.add_argument("--provider", default="openai")
    parser.add_argument("--model", default=None, help="Override the configured model")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request deadline in seconds",
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("chat", help="Interactive streaming chat (default)")
    sub.add_parser("demo", help="Run the example walkthrough")
    sub.add_parser("models", help="List models offered by the provider")
    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "chat"
    return args


def _write_token(token: str) -> None:
    sys.stdout.write(token)
    sys.stdout.flush()


async def run_chat(service: ChatService, settings: Settings, provider: str, model: str) -> None:
    session = ChatSession(
        service,
        provider_name=provider,
        model=model,
        system_prompt=settings.system_prompt,
        request_timeout_s=settings.request_timeout_s,
    )
    print(session.history[0])
    print("(Type /quit or press Ctrl+D to leave)")
    while True:
        try:
            question = await asyncio.to_thread(input, "You: ")
        except EOFError:
            print()
            return
        if question.strip() in QUIT_COMMANDS:
            return
        if not question.strip():
            continue

        sys.stdout.write("AI: ")
        reply = await session.ask(question, on_token=_write_token)
        print()
        if reply is None:
            print(session.history[-1])


async def run_demo(service: ChatService, provider: str, model: str) -> None:
    print("=== Simple Chat Example ===")
    try:
        answer = await service.simple_chat(provider, model, "What is the capital of France?")
        print(f"Response: {answer}\n")
    except WrapperError as exc:
        print(f"Simple chat error: {exc}")

    print("=== Chat with History Example ===")
    history = [
        Message(role="system", content="You are a helpful assistant that speaks like a pirate."),
        Message(role="user", content="Tell me about the weather."),
    ]
    try:
        answer = await service.chat_with_history(provider, model, history)
        print(f"Pirate Response: {answer}\n")
    except WrapperError as exc:
        print(f"Chat with history error: {exc}")

    print("=== Streaming Chat Example ===")
    request = ChatRequest(
        messages=[
            Message(role="user", content="Write a short poem about artificial intelligence."),
        ],
        model=model,
        max_tokens=150,
        temperature=0.7,
    )
    try:
        async with await service.chat_stream(provider, request) as stream:
            sys.stdout.write("Streamed Response: ")
            async for chunk in stream:
                if chunk.error is not None:
                    print(f"\nStream error: {chunk.error}")
                    break
                _write_token(chunk.content)
                if chunk.done:
                    print("\n[Stream completed]")
    except WrapperError as exc:
        print(f"Stream chat error: {exc}")

    print("\n=== Provider Information ===")
    print(f"Available providers: {service.list_providers()}")
    try:
        models = await service.get_provider_models(provider)
        print(f"{provider} models: {models}")
    except WrapperError as exc:
        print(f"Error getting models: {exc}")

    print("\n=== Health Check ===")
    try:
        await service.health_check(provider)
        print(f"{provider} provider is healthy")
    except WrapperError as exc:
        print(f"Health check failed: {exc}")

    print("\n=== Advanced Chat Example ===")
    advanced = ChatRequest(
        messages=[
            Message(role="system", content="You are a creative writing assistant."),
            Message(
                role="user",
                content="Write a creative title for a sci-fi story about time travel.",
            ),
        ],
        model="gpt-4",
        max_tokens=50,
        temperature=0.9,
    )
    try:
        response = await service.chat(provider, advanced)
        print(f"Creative Title: {response.content}")
        print(f"Usage: {response.usage.model_dump()}")
        print(f"Model: {response.model}, ID: {response.id}")
    except WrapperError as exc:
        print(f"Advanced chat error: {exc}")


async def run_models(service: ChatService, provider: str) -> None:
    for model_id in await service.get_provider_models(provider):
        print(model_id)


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        if args.command == "demo":
            model = args.model or settings.default_model
            async with asyncio.timeout(settings.request_timeout_s):
                await run_demo(service, args.provider, model)
        elif args.command == "models":
            async with asyncio.timeout(settings.request_timeout_s):
                await run_models(service, args.provider)
        else:
            await run_chat(service, settings, args.provider, args.model or settings.chat_model)
    finally:
        await service.aclose()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = get_settings()
    if args.timeout is not None:
        settings = settings.model_copy(update={"request_timeout_s": args.timeout})
    configure_logging(settings.log_level)
    try:
        asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except WrapperError as exc:
        logger.error("command_failed", extra={"error": str(exc)})
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
