"""
Simulation of a chat backend using termops.

A scripted "model" writes replies with terminal directives embedded in them.
Each reply is run through the toolkit, and the rendered results are appended
the way a chat UI would show them. Safe commands run; dangerous ones are
refused by the security policy.
"""

import asyncio
import logging
import tempfile

from termops import TerminalConfig, create_terminal


class MockLLM:
    """Replays canned replies, one per turn."""

    def __init__(self):
        self.step = 0

    def next_reply(self) -> str | None:
        replies = [
            # Plain block, one command per line
            "Let me look around first.\n"
            "```bash\n"
            "pwd\n"
            "# create a script to run later\n"
            "echo 'print(\"Hello World\")' > hello.py\n"
            "ls\n"
            "```",
            # Structured block with a timeout
            "Running the script.\n"
            "```terminal\n"
            '{"operation": "execute", "command": "python3 hello.py", "timeout": 5000}\n'
            "```",
            # Background process, then a listing
            "Starting a long task.\n"
            "```terminal\n"
            '{"operation": "background", "command": "sleep 60"}\n'
            "```\n"
            "```terminal\n"
            '{"operation": "list_processes"}\n'
            "```",
            # The model gets confused (dangerous)
            "Cleaning up everything.\n```bash\nrm -rf /\n```",
        ]
        if self.step < len(replies):
            reply = replies[self.step]
            self.step += 1
            return reply
        return None


async def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    with tempfile.TemporaryDirectory(prefix="termops_demo_") as workspace:
        config = TerminalConfig(base_dir=workspace, max_timeout_ms=10_000)

        async with await create_terminal(config=config) as toolkit:
            print("🤖 System prompt section:\n")
            print(toolkit.tool_prompt)
            print("=" * 50)

            llm = MockLLM()
            while True:
                reply = llm.next_reply()
                if reply is None:
                    print("✅ Conversation finished.")
                    break
                print(await toolkit.reply_with_results(reply))
                print("-" * 50)


if __name__ == "__main__":
    asyncio.run(main())
