"""Prompt templates for the generation provider."""

IDENTIFY_LANDMARK_PROMPT = """Analyze the image and identify the tourist landmark. Output Language: {language}."""

IDENTIFY_LOCATION_HINT = """ The user is at GPS coordinates: Lat {latitude}, Long {longitude}. \
Use this location to pinpoint the exact landmark, distinguishing from replicas or similar buildings."""

IDENTIFY_OUTPUT_FORMAT = """
Return a JSON with:
1. "landmark_name": Name and city of the place (in {language}).
2. "confidence_score": Confidence from 0.0 to 1.0."""

NEARBY_PLACES_PROMPT = """I am at these coordinates: Lat {latitude}, Lon {longitude}.
Perform a full scan using Google Maps and Google Search within a {radius} meter radius.
Find monuments, statues, old architecture, squares, museums, or historical buildings.

List {count} places.
Output Language: {language} (Ensure the Name and Type are in {language}).

Required format per line:
NAME | TYPE | DISTANCE (e.g. 350m)

Example:
Palace of Culture | Cultural Center | 420m"""

NEARBY_EXCLUSION = """

IMPORTANT: Do NOT include these places in the list (I already have them): {names}. Find DIFFERENT places."""

LANDMARK_DETAILS_PROMPT = """Create a CONCISE and interesting SUMMARY (max 200 words) about the history, \
curiosities, and cultural importance of "{landmark}" in {language}.
Be direct and immersive like a local guide. Avoid very long texts. Provide links from Google Maps \
and other reliable sources so I can see real photos and exact location."""

NARRATION_PROMPT = """Narrate this text as a professional, captivating, and enthusiastic tour guide \
in {language}: {text}"""

DETAILS_FALLBACK_TEXT = "Historical information unavailable at the moment."
