from __future__ import annotations

import re
from dataclasses import dataclass


CURRICULUM: dict[str, dict[str, list[str]]] = {
    "mathematics": {
        "quadratic equations": [
            "quadratic", "equation", "squared", "x squared", "ax squared", "bx", "polynomial",
            "degree 2", "factorization", "factoring", "roots", "discriminant", "formula",
            "quadratic formula", "parabola", "coefficient", "factor", "completing the square",
            "vertex", "axis of symmetry", "zero product", "b squared", "four ac", "4ac",
            "minus b", "plus or minus", "two solutions", "standard form", "equal to zero",
            "solve for x", "value of x", "roots of", "sum of roots", "product of roots",
            "nature of roots", "real roots", "imaginary roots",
        ],
        "linear equations": [
            "linear", "straight line", "slope", "intercept", "y equals mx plus b", "gradient",
            "coordinate", "axis", "graph", "variable", "constant", "parallel", "perpendicular",
            "point slope", "standard form", "x intercept", "y intercept", "slope intercept",
        ],
        "trigonometry": [
            "sine", "cosine", "tangent", "sin", "cos", "tan", "theta", "angle", "triangle",
            "hypotenuse", "opposite", "adjacent", "degree", "radian", "pythagoras",
            "pythagorean", "trigonometric", "ratio", "secant", "cosecant", "cotangent",
            "identity", "unit circle",
        ],
        "algebra": [
            "variable", "expression", "equation", "polynomial", "factor", "simplify", "solve",
            "substitute", "coefficient", "term", "exponent", "radical", "inequality",
            "function", "domain", "range",
        ],
        "geometry": [
            "angle", "triangle", "circle", "square", "rectangle", "polygon", "area",
            "perimeter", "volume", "congruent", "similar", "parallel", "perpendicular",
            "radius", "diameter", "circumference", "theorem",
        ],
        "calculus": [
            "derivative", "integral", "limit", "function", "slope", "rate", "differentiation",
            "integration", "continuous", "tangent", "curve", "maximum", "minimum",
            "optimization", "chain rule", "product rule",
        ],
        "statistics": [
            "mean", "median", "mode", "average", "standard deviation", "variance",
            "probability", "distribution", "sample", "population", "hypothesis",
            "correlation", "regression", "data", "frequency", "histogram",
        ],
        "matrices": [
            "matrix", "determinant", "inverse", "multiplication", "addition", "transpose",
            "row", "column", "identity", "vector", "eigenvalue",
        ],
    },
    "science": {
        "photosynthesis": [
            "photosynthesis", "chlorophyll", "sunlight", "carbon dioxide", "oxygen", "glucose",
            "plant", "leaf", "leaves", "green", "chloroplast", "energy", "water", "stoma",
            "stomata", "light reaction", "dark reaction", "calvin cycle", "atp", "nadph",
        ],
        "newton laws": [
            "force", "mass", "acceleration", "f equals ma", "inertia", "motion", "action",
            "reaction", "velocity", "momentum", "friction", "newton", "gravity",
            "equilibrium", "net force", "kinematics", "dynamics", "first law", "second law",
            "third law",
        ],
        "atoms": [
            "electron", "proton", "neutron", "nucleus", "orbit", "element", "atomic number",
            "mass number", "isotope", "ion", "charge", "shell", "valence", "bond",
            "molecule", "compound",
        ],
        "chemical reactions": [
            "reactant", "product", "catalyst", "equation", "balance", "acid", "base", "salt",
            "oxidation", "reduction", "exothermic", "endothermic", "combustion", "synthesis",
            "decomposition", "displacement",
        ],
        "electricity": [
            "current", "voltage", "resistance", "ohm", "circuit", "conductor", "insulator",
            "ampere", "watt", "electron flow", "battery", "switch", "series", "parallel",
            "capacitor", "electromagnetic",
        ],
        "magnetism": [
            "magnet", "pole", "field", "attract", "repel", "compass", "iron",
            "electromagnetic", "induction", "flux", "coil", "motor", "generator",
        ],
        "biology": [
            "cell", "organism", "tissue", "organ", "system", "dna", "gene", "chromosome",
            "protein", "mitosis", "meiosis", "evolution", "ecology",
        ],
        "human body": [
            "heart", "brain", "lung", "liver", "kidney", "blood", "bone", "muscle", "nerve",
            "digestion", "respiration", "circulation", "immune",
        ],
    },
    "english": {
        "grammar": [
            "noun", "verb", "adjective", "adverb", "pronoun", "preposition", "conjunction",
            "sentence", "clause", "phrase", "tense", "subject", "object", "predicate",
            "modifier", "article", "voice", "mood",
        ],
        "literature": [
            "poem", "story", "character", "plot", "theme", "metaphor", "simile", "imagery",
            "author", "narrative", "setting", "conflict", "resolution", "symbolism", "irony",
            "foreshadowing", "protagonist",
        ],
        "writing skills": [
            "essay", "paragraph", "introduction", "conclusion", "thesis", "argument",
            "evidence", "citation", "draft", "revision", "edit", "coherence", "clarity",
            "tone", "style", "audience",
        ],
        "comprehension": [
            "reading", "understanding", "inference", "summary", "main idea", "detail",
            "context", "vocabulary", "interpretation", "analysis",
        ],
        "poetry": [
            "rhyme", "meter", "stanza", "verse", "rhythm", "alliteration", "assonance",
            "sonnet", "haiku", "free verse", "imagery", "tone",
        ],
    },
    "history": {
        "independence": [
            "freedom", "british", "gandhi", "nehru", "partition", "struggle", "movement",
            "salt march", "quit india", "independence", "colony", "revolution",
            "nationalism", "swadeshi", "civil disobedience",
        ],
        "ancient india": [
            "indus valley", "harappa", "mohenjo daro", "vedic", "maurya", "gupta", "ashoka",
            "civilization", "empire", "dynasty", "sanskrit", "buddha", "jainism", "hinduism",
            "trade route",
        ],
        "world wars": [
            "war", "battle", "army", "navy", "alliance", "treaty", "weapon", "soldier",
            "victory", "defeat", "occupation", "liberation", "peace",
        ],
        "medieval india": [
            "mughal", "sultan", "kingdom", "empire", "invasion", "akbar", "architecture",
            "trade", "culture", "religion", "conquest",
        ],
    },
    "geography": {
        "climate": [
            "weather", "temperature", "rainfall", "humidity", "season", "monsoon", "tropical",
            "temperate", "polar", "atmosphere", "precipitation",
        ],
        "landforms": [
            "mountain", "plateau", "plain", "valley", "river", "ocean", "lake", "desert",
            "forest", "island", "peninsula", "continent",
        ],
        "maps": [
            "scale", "direction", "symbol", "legend", "latitude", "longitude", "grid",
            "compass", "projection", "contour", "elevation",
        ],
    },
    "computer_science": {
        "programming basics": [
            "variable", "function", "loop", "condition", "array", "string", "integer",
            "boolean", "syntax", "algorithm", "debug", "compile",
        ],
        "data structures": [
            "array", "list", "stack", "queue", "tree", "graph", "hash", "linked list",
            "sorting", "searching", "complexity", "algorithm",
        ],
        "web development": [
            "html", "css", "javascript", "website", "browser", "server", "database", "api",
            "frontend", "backend", "responsive", "framework",
        ],
        "artificial intelligence": [
            "machine learning", "neural network", "deep learning", "algorithm", "model",
            "training", "prediction", "classification", "regression",
        ],
    },
    "economics": {
        "microeconomics": [
            "demand", "supply", "price", "market", "consumer", "producer", "equilibrium",
            "elasticity", "cost", "revenue", "profit", "utility",
        ],
        "macroeconomics": [
            "gdp", "inflation", "unemployment", "fiscal", "monetary", "policy", "trade",
            "export", "import", "budget", "deficit", "growth",
        ],
    },
}

# Greetings, logistics chatter and leisure talk. Any hit vetoes an on-topic verdict.
OFF_TOPIC_PHRASES: list[str] = [
    "good morning", "good afternoon", "good evening", "hello everyone", "how are you",
    "how was your weekend", "your weekend", "last weekend", "lunch break", "lunch",
    "canteen", "attendance", "bathroom", "washroom", "school bus", "fees", "holiday",
    "vacation", "movie", "movies", "cricket", "football", "video game", "party",
    "song", "music", "netflix", "instagram",
]


def _title(key: str) -> str:
    return " ".join(w.capitalize() for w in key.replace("_", " ").split())


def subject_key(subject: str) -> str:
    return re.sub(r"\s+", "_", (subject or "").strip().lower())


def topic_key(topic: str) -> str:
    return re.sub(r"\s+", " ", (topic or "").strip().lower())


@dataclass(frozen=True)
class TopicProfile:
    subject: str
    topic: str
    keywords: tuple[str, ...]
    off_topic_phrases: tuple[str, ...]
    source: str


class KeywordCorpus:
    """
    Curriculum keyword table keyed by (subject, topic).

    Built-in topics and custom topics live in the same table; `lookup` is the only way
    the classifiers read it.
    """

    def __init__(
        self,
        topics: dict[str, dict[str, list[str]]] | None = None,
        off_topic_phrases: list[str] | None = None,
    ) -> None:
        source = CURRICULUM if topics is None else topics
        self._topics: dict[str, dict[str, list[str]]] = {
            subject_key(s): {topic_key(t): list(kws) for t, kws in ts.items()} for s, ts in source.items()
        }
        self._off_topic = list(OFF_TOPIC_PHRASES if off_topic_phrases is None else off_topic_phrases)
        self._custom: set[tuple[str, str]] = set()

    def add_custom_topic(self, subject: str, topic: str, keywords: list[str] | None = None) -> TopicProfile:
        s, t = subject_key(subject), topic_key(topic)
        if not s or not t:
            raise ValueError("subject and topic are required")
        cleaned = [k.strip().lower() for k in (keywords or []) if k and k.strip()]
        if not cleaned:
            cleaned = t.split()
        self._topics.setdefault(s, {})[t] = list(dict.fromkeys(cleaned))
        self._custom.add((s, t))
        return self.lookup(topic, subject)

    def is_custom(self, subject: str, topic: str) -> bool:
        return (subject_key(subject), topic_key(topic)) in self._custom

    def list_topics(self) -> dict[str, list[str]]:
        return {_title(s): [_title(t) for t in ts] for s, ts in self._topics.items()}

    def lookup(self, topic: str, subject: str) -> TopicProfile:
        s, t = subject_key(subject), topic_key(topic)
        keywords, source = self._resolve(t, s)
        kw_set = set(keywords)
        off_topic = tuple(p for p in self._off_topic if p not in kw_set)
        return TopicProfile(subject=s, topic=t, keywords=tuple(keywords), off_topic_phrases=off_topic, source=source)

    def _resolve(self, t: str, s: str) -> tuple[list[str], str]:
        subject_topics = self._topics.get(s)
        if subject_topics:
            if t in subject_topics:
                return subject_topics[t], "exact"
            for name, kws in subject_topics.items():
                if name in t or t in name:
                    return kws, "subject_match"
        for topics in self._topics.values():
            for name, kws in topics.items():
                if t and (name in t or t in name):
                    return kws, "cross_subject_match"
        if subject_topics:
            merged = [kw for kws in subject_topics.values() for kw in kws]
            return list(dict.fromkeys(merged)), "subject_union"
        return [w for w in re.findall(r"[a-z0-9]+", t) if len(w) > 3], "topic_words"
