from slpcheck import Checker
import asyncio


async def main():
    async with Checker() as checker:
        outcome = await checker.query("play.example.com")
    print(outcome.message)
    if not outcome.success:
        return
    ms = outcome.status
    print(
        f"Server is online running version {ms.version} with {ms.current_players} out of {ms.max_players} players."
    )
    print(f"Message of the day: {ms.motd}")
    print(f"Message of the day without formatting: {ms.stripped_motd}")
    print(f"Connected using protocol: {ms.protocol_version}")

asyncio.run(main())
