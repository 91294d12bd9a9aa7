"""
Main entry point: create_terminal factory function.

This is the primary API for wiring the command execution core into an LLM
chat backend.
"""

from __future__ import annotations

from dataclasses import replace

from termops._types import SecurityLevel, TerminalToolkit
from termops.config import TerminalConfig
from termops.dispatcher import CommandDispatcher
from termops.prompt import discover_tools, generate_directive_prompt
from termops.registry import ProcessRegistry
from termops.runner import CommandRunner
from termops.security.policy import SecurityPolicy


async def create_terminal(
    *,
    config: TerminalConfig | None = None,
    security: SecurityPolicy | SecurityLevel | None = None,
    extra_instructions: str | None = None,
    discover: bool = True,
) -> TerminalToolkit:
    """
    Create a terminal toolkit for processing model replies.

    Builds one ProcessRegistry, CommandRunner and CommandDispatcher that
    share the given configuration. Construct it once per application and
    keep it for the application's lifetime; background processes are
    tracked by the toolkit's registry.

    Args:
        config: Limits and defaults. Defaults to ``TerminalConfig.from_env()``.
        security: Security policy or level. Defaults to STANDARD.
        extra_instructions: Additional context for the LLM prompt.
        discover: Probe the host for well-known tools to list in the prompt.

    Returns:
        TerminalToolkit with process_reply, run and close methods.

    Example:
        >>> toolkit = await create_terminal()
        >>> results = await toolkit.process_reply(model_reply)
        >>> print(format_results(results))

    Example with security levels:
        >>> # Paranoid mode - only allow specific commands
        >>> toolkit = await create_terminal(
        ...     security=SecurityPolicy.paranoid(allowed={"ls", "cat", "grep"})
        ... )
    """
    config = config or TerminalConfig.from_env()

    # Resolve security policy
    policy: SecurityPolicy
    if security is None:
        policy = SecurityPolicy.standard()
    elif isinstance(security, SecurityLevel):
        if security == SecurityLevel.PARANOID:
            raise ValueError(
                "SecurityLevel.PARANOID requires an allowlist. "
                "Use SecurityPolicy.paranoid(allowed={...}) instead."
            )
        policy = SecurityPolicy(level=security)
    else:
        policy = security

    # Copy of the caller's policy, completed with the configured roots
    policy = replace(
        policy,
        safe_roots=policy.safe_roots or config.safe_roots,
        confine_to_safe_roots=policy.confine_to_safe_roots or config.confine_to_safe_roots,
        denied_patterns=list(policy.denied_patterns),
        allowed_commands=set(policy.allowed_commands),
    )

    registry = ProcessRegistry(grace_period_ms=config.grace_period_ms)
    runner = CommandRunner(registry, config)
    dispatcher = CommandDispatcher(runner, policy=policy, config=config)

    tool_prompt = generate_directive_prompt(
        base_dir=config.base_dir,
        timeout_ms=config.max_timeout_ms,
        available=discover_tools() if discover else None,
        extra_instructions=extra_instructions,
    )

    return TerminalToolkit(
        dispatcher=dispatcher,
        tool_prompt=tool_prompt,
        security=policy,
        config=config,
    )
