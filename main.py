#!/usr/bin/env python3
"""
MindCoach - Main Runner

Usage:
    python main.py serve                 # Run the HTTP API with the real microphone
    python main.py simulate script.txt   # Feed text lines through the pipeline
    python main.py tip --hour 8          # Print a time-based coaching tip
"""

import argparse
import asyncio
import logging
import random
from datetime import datetime
from pathlib import Path
from typing import List

from mindcoach import config
from mindcoach.config import OrchestratorSettings
from mindcoach.events import CoachingCallbacks
from mindcoach.models import UserProfile
from mindcoach.orchestrator import RecordingOrchestrator
from mindcoach.scheduler import time_based_tip
from mindcoach.services.insights import GeminiInsightService
from mindcoach.simulation import PrintingSynthesizer, ScriptedCapture, ScriptTranscriber

DEMO_SCRIPT = [
    "I have a big project deadline at work and I can't focus today",
    "I'm so stressed and overwhelmed, I feel like giving up",
    "",
    "I realized the struggle was really about asking for help",
    "I went for a walk and I'm proud I finished the report",
]


def print_header(text: str):
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60)


def console_callbacks() -> CoachingCallbacks:
    return CoachingCallbacks(
        on_transcript_update=lambda entries: print(f"📝 [{len(entries)}] {entries[-1].text}"),
        on_moment_detected=lambda m: print(f"⭐ Moment ({m.type.value}, {m.significance:.2f}): {m.transcript}"),
        on_nudge_triggered=lambda n: print(f"👉 Nudge [{n.category}]: {n.message}"),
        on_coaching_generated=lambda t: print(f"💡 Tip [{t.source.value}]: {t.message}"),
        on_voice_feedback=lambda e: print(f"🔊 Voice feedback: {e.text}"),
    )


def load_script(path: str = None) -> List[str]:
    if not path:
        return list(DEMO_SCRIPT)
    return Path(path).read_text(encoding="utf-8").splitlines()


async def run_simulation(lines: List[str], profile: UserProfile, segment_seconds: float):
    print_header("MindCoach Simulation")

    settings = OrchestratorSettings(
        segment_duration=segment_seconds,
        rotation_settle_delay=0.0,
    )
    capture = ScriptedCapture(lines)
    orchestrator = RecordingOrchestrator(
        capture=capture,
        transcriber=ScriptTranscriber(),
        insight_service=GeminiInsightService(),
        synthesizer=PrintingSynthesizer(),
        settings=settings,
    )

    await orchestrator.initialize(profile, console_callbacks())
    await orchestrator.start_recording()

    # one rotation per line, plus the segment left open at the end
    while capture.remaining:
        await asyncio.sleep(segment_seconds)
    await asyncio.sleep(segment_seconds)

    await orchestrator.stop_recording()
    status = orchestrator.get_recording_status()
    print_header("Summary")
    print(f"Transcript entries: {status.transcript_count}")
    print(f"Moments:            {status.moment_count}")
    print(f"Coaching tips:      {len(orchestrator.get_coaching_history())}")
    print(f"Nudges:             {len(orchestrator.get_nudge_history())}")
    await orchestrator.dispose()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="MindCoach - Continuous Recording & Coaching Engine"
    )
    parser.add_argument(
        "mode",
        nargs="?",
        default="simulate",
        choices=["serve", "simulate", "tip"],
        help="Run mode: serve (HTTP API), simulate (scripted text), or tip"
    )
    parser.add_argument("script", nargs="?", help="Text file with one segment per line (simulate)")
    parser.add_argument("--name", default="", help="User name for personalization")
    parser.add_argument("--tone", default="calm", help="Preferred voice tone: calm or cheerful")
    parser.add_argument("--hour", type=int, help="Hour of day for the tip mode (0-23)")
    parser.add_argument("--segment-seconds", type=float, default=0.5, help="Segment length for simulate")
    parser.add_argument("--host", default=config.BACKEND_HOST)
    parser.add_argument("--port", type=int, default=config.BACKEND_PORT)

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    profile = UserProfile(name=args.name, voice_tone=args.tone)

    if args.mode == "serve":
        from mindcoach.server import run
        run(host=args.host, port=args.port)
    elif args.mode == "simulate":
        asyncio.run(run_simulation(load_script(args.script), profile, args.segment_seconds))
    elif args.mode == "tip":
        now = datetime.now()
        if args.hour is not None:
            now = now.replace(hour=args.hour)
        tip = time_based_tip(profile, now, random.Random())
        print(tip.message)


if __name__ == "__main__":
    main()
