# Local chat loop against the agent, no WhatsApp involved.
import argparse
import logging

from agent.concierge.main import ConciergeAgent
from agent.concierge.tool_registry import build_tool_registry
from shared.completion import CompletionService
from shared.config import load_settings
from shared.profile import ProfileService
from shared.tavily_search import SearchService
from apps.bot import build_profile_store


def main():
    parser = argparse.ArgumentParser(description="Chat with the concierge agent from the terminal")
    parser.add_argument("--user-id", default="local-cli", help="profile id to use")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    settings = load_settings()
    profiles = ProfileService(build_profile_store(settings))
    registry = build_tool_registry(SearchService.from_settings(settings), profiles)
    agent = ConciergeAgent(
        CompletionService.from_settings(settings), profiles, registry, history_turns=settings.history_turns
    )

    while True:
        try:
            user_input = input("You: ")
        except (EOFError, KeyboardInterrupt):
            break
        if user_input.strip().lower() in {"exit", "quit"}:
            break
        if not user_input.strip():
            continue

        try:
            result = agent.run_agent_prompt(user_input, args.user_id)
        except Exception as e:
            print(f"[Error] {e}")
            continue
        print(f"Agent: {result.message}")
        print(f"  (tools: {', '.join(result.tools_used) or '-'}, confidence: {result.confidence})")


if __name__ == "__main__":
    main()
