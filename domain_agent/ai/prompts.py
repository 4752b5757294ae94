# domain_agent/ai/prompts.py
"""Prompt templates for the domain advisor. Rendered with str.format."""

DOMAIN_SUGGESTION_PROMPT = """
You are an expert domain name consultant. Based on the user's requirements, suggest relevant domain names.

User Requirements:
- Business/Project: {business}
- Industry: {industry}
- Keywords: {keywords}
- Budget: {budget}
- Preferred Extensions: {extensions}
- Target Audience: {audience}

Additional Context: {context}

Please suggest 10 creative, memorable, and brandable domain names that:
1. Are relevant to the business/industry
2. Are easy to remember and spell
3. Are SEO-friendly
4. Sound professional
5. Are likely to be available

For each suggestion, provide:
- Domain name
- Why it's a good fit (1-2 sentences)
- Estimated brandability score (1-10)
- Target extension preference

Format your response as a JSON array of objects with keys: domain, reasoning, brandabilityScore, extension.
"""

DOMAIN_ANALYSIS_PROMPT = """
Analyze the following domain name and provide detailed insights:

Domain: {domain}
User Context: {context}

Please analyze:
1. Brandability (1-10)
2. Memorability (1-10)
3. SEO potential (1-10)
4. Industry relevance (1-10)
5. Overall recommendation (1-10)

Provide insights on:
- Strengths of this domain
- Potential weaknesses
- Target market suitability
- Alternative suggestions if score is low

Format as a JSON object with keys: scores (brandability, memorability, seo, relevance, overall),
strengths, weaknesses, targetMarket, alternatives.
"""

CONSULTATION_PROMPT = """
You are a domain expert consultant. The user is asking: {question}

User Context:
- Previous conversation: {conversation}
- User preferences: {preferences}
- Current domains of interest: {domains}

Provide helpful, expert advice about domain names, web presence, branding, or related topics.
Be conversational, helpful, and provide actionable insights.

If the user is asking about pricing, availability, or technical aspects, provide general guidance
but recommend they check current data through our system.
"""

BUSINESS_NAME_PROMPT = """
Generate creative business names for a {industry} business.
Keywords to incorporate: {keywords}
Style preference: {style}

Generate 10 unique, brandable business names that:
1. Are memorable and catchy
2. Reflect the industry
3. Are available as domains (likely)
4. Sound professional

For each name, suggest the best domain extension and explain why it works.

Format as JSON array with: name, domain, extension, reasoning.
"""
