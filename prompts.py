"""
Prompt templates for Turf Fertility Manager's AI features.
Keeps the wording in one place; ai_advisor fills them in.
"""

# =============================================================================
# CHAT ASSISTANT
# =============================================================================

CHAT_SYSTEM_PROMPT = """You are "TurfBot", an expert turfgrass agronomist helping golf course superintendents.

Give practical, specific fertilization and turf health advice:
- Quote rates in g/㎡ (granular) or ml/㎡ (liquid) and nutrient amounts in g/㎡
- Consider season, grass type and the zone (green, tee, fairway)
- Keep answers concise and actionable
- Remember the earlier turns of the conversation"""

CHAT_GREETING = "Hi, I'm TurfBot. Ask me anything about turf care or fertilizer planning."

CHAT_ERROR_MESSAGE = "Sorry, I couldn't answer just now. Please try again in a moment."


# =============================================================================
# FERTILIZATION RECOMMENDATION
# =============================================================================

ADVISOR_SYSTEM_PROMPT = """You are an expert golf course agronomist reviewing a fertilization program.
Be specific and practical. Use plain text, no LaTeX."""

RECOMMENDATION_PROMPT = """# Fertilization program review

## Current situation
- Managed area: green {green_area} ㎡, tee {tee_area} ㎡, fairway {fairway_area} ㎡
- Reference guideline: {guideline}
- Monthly trend this year (g/㎡, actual vs. goal):
{monthly_trend}
- Most used products: {top_products}
- Products on hand: {available_products}

As an expert, review the application pattern, risks, cost efficiency and propose the next application.
End your answer with the JSON block below. productName must be one of the products on hand.
```json
{{"productName": "name", "targetArea": "green" | "tee" | "fairway", "rate": number, "reason": "why"}}
```"""

RECOMMENDATION_ERROR_MESSAGE = "AI analysis failed. Please try again."


# =============================================================================
# CATALOG EXTRACTION
# =============================================================================

EXTRACTION_PROMPT = """Analyze the text below and extract the fertilizer specification.
Return only a JSON object with these fields (0 for missing numbers, "" for missing strings):
{{
    "name": "Product name",
    "usage": "one of green, tee, fairway",
    "type": "one of slow-release, liquid, water-soluble, organic, soil-amendment, functional, other",
    "unit": "package size, e.g. 20kg or 10L",
    "rate": "recommended rate, e.g. 20g/㎡ or 1.5ml/㎡",
    "price": number (price per package),
    "N": number (%), "P": number (%), "K": number (%),
    "Ca": number, "Mg": number, "S": number, "Fe": number, "Mn": number,
    "Zn": number, "Cu": number, "B": number, "Mo": number,
    "stock": number (packages in stock),
    "density": number (default 1),
    "concentration": number (liquid concentration %)
}}

Input text:
{text}"""
