"""SuggestionGeneratorFake: Scenario-based test double for SuggestionGenerator.

Provides deterministic, instant responses for named scenarios:
- happy_path: valid suggestion JSON
- fenced: valid suggestion JSON wrapped in a ```json fence
- llm_failure: provider error raised
- invalid_json: output that does not parse
- wrong_shape: parseable JSON missing required keys
- empty: blank output
"""

import json

from editorial_ai.suggestions.schemas import GenerationJob

HAPPY_PATH_SUGGESTION = {
    "strategie": {
        "objectif": "Remplir les sessions d'enregistrement du mois",
        "angle": "Coulisses d'une session avec un artiste local",
        "planning": ["J-7 teaser", "J-3 reel coulisses", "J0 annonce"],
        "cta": "Reserve ta session en DM",
        "kpis": ["DM recus", "reservations"],
    },
    "reels": [
        {
            "titre": "Avant / apres mix",
            "hook": "Ecoute la difference",
            "scenario": "Extrait brut puis version mixee",
            "plans": ["console", "artiste en cabine"],
            "texteOnScreen": "Avant -> Apres",
            "caption": "Le mix change tout.",
            "cta": "Reserve ta session",
            "hashtags": ["#studio", "#mixage"],
        }
    ],
    "stories": [{"titre": "Sondage", "sequence": ["question", "resultat"], "cta": "Reponds"}],
    "themes": [{"theme": "Equipement", "pourquoi": "Rassure", "variantes": ["micro", "preamp"]}],
    "checklist": ["Valider le visuel", "Programmer le post"],
}


class SuggestionGeneratorFake:
    """Scenario-based test double for the SuggestionGenerator protocol."""

    VALID_SCENARIOS = {"happy_path", "fenced", "llm_failure", "invalid_json", "wrong_shape", "empty"}

    def __init__(self, scenario: str = "happy_path"):
        """Initialize the fake with a named scenario.

        Raises:
            ValueError: If scenario is not recognized
        """
        if scenario not in self.VALID_SCENARIOS:
            raise ValueError(f"Unknown scenario: {scenario}. Valid scenarios: {self.VALID_SCENARIOS}")
        self.scenario = scenario
        self.jobs: list[GenerationJob] = []

    async def generate(self, job: GenerationJob) -> str:
        self.jobs.append(job)

        if self.scenario == "llm_failure":
            raise RuntimeError("Provider error 503: model overloaded")
        if self.scenario == "invalid_json":
            return "Voici mes idees: {pas du json"
        if self.scenario == "wrong_shape":
            return json.dumps({"strategie": {"objectif": "x"}})
        if self.scenario == "empty":
            return "   "

        payload = json.dumps(HAPPY_PATH_SUGGESTION, ensure_ascii=False)
        if self.scenario == "fenced":
            return f"```json\n{payload}\n```"
        return payload
