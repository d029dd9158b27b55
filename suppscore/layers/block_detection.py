"""
Block Detection - recognizes bot-challenge and access-denied pages.

A provider can answer 200 with a challenge page instead of the product. The
signature table below decides whether content is such a page; the provider
chain discards blocked content and escalates to the next adapter.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern


@dataclass(frozen=True)
class BlockSignature:
    """One challenge-page fingerprint."""
    name: str
    pattern: Pattern
    # Only applies to documents shorter than this (None = any size)
    max_length: Optional[int] = None


@dataclass
class BlockVerdict:
    blocked: bool
    signature: Optional[str] = None


# Weak signatures are only trusted on short documents: real product pages can
# mention "captcha" in an embedded script without being blocked.
WEAK_SIGNATURE_MAX_LENGTH = 20000

BLOCK_SIGNATURES: List[BlockSignature] = [
    BlockSignature("cloudflare_attention", re.compile(r"<title>\s*Attention Required!\s*\|\s*Cloudflare", re.I)),
    BlockSignature("cloudflare_challenge", re.compile(r"<title>\s*Just a moment\.\.\.\s*</title>", re.I)),
    BlockSignature("cloudflare_challenge_platform", re.compile(r"/cdn-cgi/challenge-platform/|cf-chl-bypass|cf_chl_opt", re.I), WEAK_SIGNATURE_MAX_LENGTH),
    BlockSignature("perimeterx", re.compile(r"px-captcha|_pxCaptcha|perimeterx", re.I), WEAK_SIGNATURE_MAX_LENGTH),
    BlockSignature("incapsula", re.compile(r"_Incapsula_Resource|Request unsuccessful\. Incapsula incident", re.I), WEAK_SIGNATURE_MAX_LENGTH),
    BlockSignature("datadome", re.compile(r"captcha-delivery\.com|geo\.captcha-delivery|datadome", re.I), WEAK_SIGNATURE_MAX_LENGTH),
    BlockSignature("akamai_access_denied", re.compile(r"Access Denied</h1>.*?Reference\s*#[\d.a-f]+", re.I | re.S)),
    BlockSignature("distil", re.compile(r"distil_r_captcha|distilCaptchaForm|Distil Networks", re.I)),
    BlockSignature("pardon_interruption", re.compile(r"Pardon Our Interruption", re.I)),
    BlockSignature("amazon_robot_check", re.compile(r"<title[^>]*>\s*Robot Check\s*</title>", re.I)),
    BlockSignature("problem_occurred", re.compile(r"<title[^>]*>\s*a problem has occurred", re.I)),
    BlockSignature("captcha", re.compile(r"\bcaptcha\b", re.I), WEAK_SIGNATURE_MAX_LENGTH),
    BlockSignature("access_denied", re.compile(r"\baccess denied\b|\b403 forbidden\b", re.I), WEAK_SIGNATURE_MAX_LENGTH),
    BlockSignature("robot_prompt", re.compile(r"are you a (human|robot)|verify you are (a )?human", re.I), WEAK_SIGNATURE_MAX_LENGTH),
]


def detect_block(content: Optional[str], signatures: Optional[List[BlockSignature]] = None) -> BlockVerdict:
    """
    Check page content against the challenge-page signatures.

    Args:
        content: HTML or markdown returned by a provider
        signatures: override table (defaults to BLOCK_SIGNATURES)

    Returns:
        BlockVerdict naming the first matching signature
    """
    if not content:
        return BlockVerdict(blocked=False)

    length = len(content)
    for signature in signatures or BLOCK_SIGNATURES:
        if signature.max_length is not None and length >= signature.max_length:
            continue
        if signature.pattern.search(content):
            return BlockVerdict(blocked=True, signature=signature.name)
    return BlockVerdict(blocked=False)
