"""Resume example: turn collected answers into a structured resume with HTML."""

import asyncio
import json

from dotenv import load_dotenv

from flowsynth import create_orchestrator, get_logger, load_settings

# Load environment variables
load_dotenv()

logger = get_logger()


FLOW_CONFIG = {
    "name": "Resume Builder",
    "purpose": "Build a one-page professional resume",
    "output_schema": {
        "name": "string",
        "email": "string",
        "experience": [{"company": "string", "role": "string", "years": "string"}],
        "education": [{"school": "string", "degree": "string", "year": "number"}],
        "skills": ["string"],
    },
}

COLLECTED_DATA = {
    "name": "John Doe",
    "email": "john@example.com",
    "experience": [
        "Software Engineer at Google (2019-2023)",
        "Developer at Startup (2017-2019)",
    ],
    "education": "BS Computer Science, MIT, 2017",
    "skills": ["Python", "JavaScript", "React", "Node.js"],
}


async def main(quick: bool = False):
    settings = load_settings()
    orchestrator = create_orchestrator(settings)

    if quick:
        result = await orchestrator.quick_generate(FLOW_CONFIG, COLLECTED_DATA)
    else:
        result = await orchestrator.orchestrate(FLOW_CONFIG, COLLECTED_DATA)

    print(f"Approved: {result.approved}")
    print(f"Quality score: {result.quality_score:g}")
    print(f"Iterations: {result.iterations}")
    print(json.dumps(result.candidate.structured_data, indent=2))
    return result


if __name__ == "__main__":
    asyncio.run(main())
