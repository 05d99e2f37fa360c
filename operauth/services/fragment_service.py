# --- File: operauth/services/fragment_service.py ---
"""
Turns challenge and verify outcomes into protocol reply lines.

The challenge text is split across as many 740 lines as needed and closed
with a 741 line. Every protocol-state failure gets the same 464 reply so the
peer cannot tell an expired challenge from a wrong answer.
"""
from typing import List, Optional

from operauth.core.config import settings
from operauth.schemas.challenge import (
    ChallengeOutcome,
    ChallengeStatus,
    DenyReason,
    VerifyOutcome,
    VerifyStatus
)

RPL_YOUREOPER = "381"
ERR_PASSWDMISMATCH = "464"
ERR_NOOPERHOST = "491"
RPL_RSACHALLENGE2 = "740"
RPL_ENDOFRSACHALLENGE2 = "741"


def fragment_challenge(challenge_text: str, line_width: Optional[int] = None) -> List[str]:
    """Split into chunks of at most line_width - 1 characters; always at least one chunk"""
    width = line_width or settings.CHALLENGE_LINE_WIDTH
    if width < 2:
        raise ValueError(f"Line width must be at least 2, got {width}")
    chunk = width - 1
    if not challenge_text:
        return [""]
    return [challenge_text[i:i + chunk] for i in range(0, len(challenge_text), chunk)]


def _numeric(server: str, numeric: str, nick: str, text: str) -> str:
    return f":{server} {numeric} {nick} :{text}"


def _notice(server: str, nick: str, text: str) -> str:
    return f":{server} NOTICE {nick} :{text}"


def format_challenge_reply(server: str, nick: str, challenge_text: str, line_width: Optional[int] = None) -> List[str]:
    lines = [
        _numeric(server, RPL_RSACHALLENGE2, nick, chunk)
        for chunk in fragment_challenge(challenge_text, line_width)
    ]
    lines.append(_numeric(server, RPL_ENDOFRSACHALLENGE2, nick, "End of CHALLENGE"))
    return lines


def format_challenge_failure(server: str, nick: str, outcome: ChallengeOutcome) -> List[str]:
    if outcome.status == ChallengeStatus.CRYPTO_FAILURE:
        return [_notice(server, nick, "Failed to generate challenge.")]

    if outcome.reason == DenyReason.SECURE_CONNECTION_REQUIRED:
        return [_notice(server, nick, "You must be using a secure connection to /CHALLENGE on this server")]
    if outcome.reason == DenyReason.ALREADY_OPER:
        return [_numeric(server, RPL_YOUREOPER, nick, "You are now an IRC operator")]
    if outcome.reason == DenyReason.PK_AUTH_DISABLED:
        return [_notice(server, nick, "I'm sorry, PK authentication is not enabled for your oper{} block.")]
    if outcome.reason == DenyReason.LOCKED_OUT:
        return [_numeric(server, ERR_PASSWDMISMATCH, nick, "Password Incorrect")]
    return [_numeric(server, ERR_NOOPERHOST, nick, "No appropriate operator blocks were found for your host")]


def format_outcome(outcome: ChallengeOutcome, nick: str, server: Optional[str] = None, line_width: Optional[int] = None) -> List[str]:
    server = server or settings.SERVER_NAME
    if outcome.status == ChallengeStatus.GENERATED:
        return format_challenge_reply(server, nick, outcome.challenge_text, line_width)
    return format_challenge_failure(server, nick, outcome)


def format_verify_reply(outcome: VerifyOutcome, nick: str, server: Optional[str] = None) -> List[str]:
    server = server or settings.SERVER_NAME
    if outcome.status == VerifyStatus.NOT_EXPECTING:
        return []
    if outcome.status == VerifyStatus.GRANTED:
        return [_numeric(server, RPL_YOUREOPER, nick, "You are now an IRC operator")]
    if outcome.status == VerifyStatus.REFUSED:
        if outcome.reason == DenyReason.ALREADY_OPER:
            return [_numeric(server, RPL_YOUREOPER, nick, "You are now an IRC operator")]
        return [_notice(server, nick, "You must be using a secure connection to /CHALLENGE on this server")]
    if outcome.status == VerifyStatus.AUTHORIZATION_REVOKED:
        return [_numeric(server, ERR_NOOPERHOST, nick, "No appropriate operator blocks were found for your host")]
    return [_numeric(server, ERR_PASSWDMISMATCH, nick, "Password Incorrect")]
