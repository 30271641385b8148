# tools/profile.py
import logging
from typing import Any, Dict, Union

from agent.concierge.tools import ToolFn
from models.agent import AgentContext, ProfileToolArgs
from shared.profile import ProfileService

logger = logging.getLogger(__name__)

PROFILE_DESCRIPTION = "Use for getting or updating user preferences, favorites, or personal info"


def make_profile_tool(profiles: ProfileService) -> ToolFn:
    def run_profile(params: Dict[str, Any], context: AgentContext) -> Union[str, Dict[str, Any]]:
        action = params.get("action")
        if action not in ("get", "update", "add_favorite"):
            raise ValueError(f"Unknown profile action: {action}")

        args = ProfileToolArgs.model_validate(params)
        logger.debug("Executing profile tool: %s for user %s", args.action, context.user_id)

        if args.action == "get":
            return profiles.get_user_summary(profiles.get_profile(context.user_id))

        if args.action == "update":
            profile = profiles.update_profile(context.user_id, args.updates or {})
            return profile.model_dump(mode="json", exclude={"conversation_history"})

        if not args.favorite_type:
            raise ValueError("favorite_type is required for add_favorite")
        profiles.add_favorite(context.user_id, args.favorite_type, args.favorite_item or "")
        return {"success": True, "message": f"Added {args.favorite_item} to {args.favorite_type}"}

    return run_profile
