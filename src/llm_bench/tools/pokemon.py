"""
Pokemon lookup tool (PokeAPI)
"""

import httpx

from llm_bench.tools.base import Tool, ToolInputError, require

POKEAPI_URL = "https://pokeapi.co/api/v2/pokemon/{name}"


class PokemonLookup(Tool):
    """Fetch id, moves and types of a single pokemon"""

    name = "pokemon_lookup"
    description = (
        "Useful for when you need to answer general questions about pokemon. "
        "You must call this function separately for each pokemon you want information about."
    )
    parameters = {
        "type": "object",
        "properties": {
            "pokemon": {
                "type": "string",
                "description": (
                    "A single pokemon name in lowercase, without quotes. E.g. pikachu. "
                    "When comparing multiple pokemon, call this function once for each pokemon."
                ),
            },
        },
        "required": ["pokemon"],
    }

    def __init__(self, timeout_seconds: float = 30.0, base_url: str = POKEAPI_URL):
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url

    def run(self, arguments: dict) -> dict:
        name = require(arguments, "pokemon", str).strip().strip("'\"").lower()
        if not name:
            raise ToolInputError("pokemon name is required")

        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                resp = client.get(self.base_url.format(name=name), headers={"User-Agent": "pokemon-tool"})
        except httpx.HTTPError as e:
            return {"error": f"PokeAPI request failed: {e}"}
        if resp.status_code == 404:
            return {"error": f"unknown pokemon: {name}"}
        if resp.status_code >= 400:
            return {"error": f"PokeAPI returned error status: {resp.status_code}"}

        data = resp.json()
        moves = [m["move"]["name"] for m in data.get("moves", [])]
        types = [t["type"]["name"] for t in data.get("types", [])]
        return {
            "id": data.get("id"),
            "name": data.get("name", name),
            "moves_count": len(moves),
            "moves": moves,
            "types": types,
        }
