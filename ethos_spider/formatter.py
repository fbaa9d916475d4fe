from ethos_spider.models import ProfileAnalysis, SearchResult


def format_report(user: SearchResult, analysis: ProfileAnalysis) -> str:
    """Format a profile analysis into a Markdown report string."""
    display = user.name or user.username or analysis.userkey
    sections = [
        f"# {display} (@{user.username})\n",
        f"*Generated {analysis.timestamp:%Y-%m-%d %H:%M} UTC with {analysis.model}*\n",
        f"- **Reviews**: {analysis.total_reviews}",
        f"- **Vouches**: {analysis.total_vouches}",
        f"- **Avg. reviewer score**: {analysis.avg_author_score}",
        f"- **Ethos score**: {user.score}",
        "",
    ]

    scored = []
    for category, value in analysis.results.items():
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            continue
        if confidence > 0:
            scored.append((category, confidence))
    scored.sort(key=lambda item: item[1], reverse=True)

    if not scored:
        sections.append("No category had supporting evidence.")
        return "\n".join(sections)

    sections.append("## Categories\n")
    sections.append("| Category | Confidence | |")
    sections.append("|---|---|---|")
    for category, confidence in scored:
        bar = "█" * round(confidence * 20)
        sections.append(f"| {category} | {confidence * 100:.0f}% | {bar} |")
    sections.append("")
    return "\n".join(sections)
