import json
import logging
import math

import google.generativeai as genai

from kgvis.graph_model import GraphData

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

EXTRACTION_PROMPT = (
    "You are a professional knowledge architect. Analyze the provided text and synthesize a unified knowledge graph.\n\n"
    "Guidelines:\n"
    "1. Extract key entities: 'Person', 'Concept', 'Data', 'Method', or 'Organization'.\n"
    "2. Identify semantic relationships.\n"
    "3. Define relationship labels clearly.\n"
    "4. Provide a weight (strength) for each link from 1-10.\n"
    "5. Ensure each node has a concise description.\n"
    "6. Output a single, valid JSON object of the form\n"
    '   {{"nodes": [{{"id", "label", "type", "description"}}], '
    '"links": [{{"source", "target", "label", "strength"}}]}}\n'
    "   where link source/target are node ids.\n\n"
    "Content:\n{content}"
)

SUMMARY_PROMPT = (
    "You are an expert analyst. Based on this Knowledge Graph (Nodes and Connections), "
    "provide a sophisticated, point-wise write-up explaining the graph.\n\n"
    "Structure your response as follows:\n"
    "1. **Executive Overview**: A high-level summary of the domain.\n"
    "2. **Key Entity Clusters**: Describe the most influential nodes and why they are central.\n"
    "3. **Primary Relationships**: Explain the most significant connections and how they drive the narrative.\n"
    "4. **Synthesis & Implications**: What are the overall conclusions one can draw from this map?\n\n"
    "Use bullet points and bold headers for clarity.\n\n"
    "GRAPH DATA:\n"
    "NODES:\n{nodes}\n\n"
    "CONNECTIONS:\n{links}"
)


class GraphExtractionError(Exception):
    pass


def _clamp_strength(value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(value):
        return 1
    return min(max(value, 1), 10)


def parse_graph_response(text):
    """Parses the model's JSON answer into GraphData, normalizing link strengths."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to parse model response: {e}")
        raise GraphExtractionError("Invalid graph data received from AI.") from e

    if not isinstance(data, dict) or not isinstance(data.get('nodes'), list) or not isinstance(data.get('links'), list):
        raise GraphExtractionError("Graph data must contain 'nodes' and 'links' lists.")

    for link in data['links']:
        if isinstance(link, dict):
            link['strength'] = _clamp_strength(link.get('strength'))

    try:
        return GraphData.from_dict(data)
    except AttributeError as e:
        # Entries that are not JSON objects
        raise GraphExtractionError(f"Malformed graph entry: {e}") from e


def build_summary_prompt(graph):
    nodes_summary = "\n".join(f"{n.label} ({n.type.value}): {n.description}" for n in graph.nodes)
    links_summary = "\n".join(f"{l.source_id} -> {l.label} -> {l.target_id}" for l in graph.links)
    return SUMMARY_PROMPT.format(nodes=nodes_summary, links=links_summary)


class GraphService:
    def __init__(self, api_key, extraction_model=DEFAULT_MODEL, summary_model=DEFAULT_MODEL):
        self.extraction_model = extraction_model
        self.summary_model = summary_model
        genai.configure(api_key=api_key)

    def extract_graph(self, content):
        logger.info(f"Requesting graph extraction from {self.extraction_model} ({len(content)} chars).")
        model = genai.GenerativeModel(
            self.extraction_model,
            generation_config={"response_mime_type": "application/json"},
        )
        response = model.generate_content(EXTRACTION_PROMPT.format(content=content))
        graph = parse_graph_response(response.text)
        logger.info(f"Model returned {len(graph.nodes)} nodes and {len(graph.links)} links.")
        return graph

    def summarize(self, graph):
        logger.info(f"Requesting graph summary from {self.summary_model}.")
        model = genai.GenerativeModel(self.summary_model, generation_config={"temperature": 0.7})
        response = model.generate_content(build_summary_prompt(graph))
        return response.text or "Failed to generate summary."
