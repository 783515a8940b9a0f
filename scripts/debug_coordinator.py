import asyncio
import os
import sys
import traceback

from dotenv import find_dotenv, load_dotenv

# Ensure .env is loaded for runs outside the IDE debugger
load_dotenv(find_dotenv(), override=False)

from analystdesk.services.orchestrator import _run_from_cli  # noqa: E402


if __name__ == "__main__":
    query = sys.argv[1:] or ["weekly", "outlook", "for", "AAPL"]
    print("🔍 Starting debug run:", " ".join(query))
    print(f"OPENAI_API_KEY set? {'yes' if os.getenv('OPENAI_API_KEY') else 'no (mock mode)'}")

    try:
        outcome = asyncio.run(_run_from_cli(query))
        print(f"✅ Run finished in state={outcome.state.value} with {outcome.contributors} analyst(s).")
    except Exception:
        print("❌ Error occurred during the run:")
        traceback.print_exc()
