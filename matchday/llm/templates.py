"""
Deterministic fallback articles, one template per kind.

Used whenever the generative capability is unavailable. Every placeholder
has a default, so the output is never empty, and the result goes through
the same length caps as generated text.
"""

from matchday.llm.schemas import (
    LEAGUE_UPDATE,
    LINEUP,
    MATCH_RESULT,
    UPCOMING_MATCH,
    ArticleContext,
    ArticleDraft,
    clamp_draft,
)

DEFAULT_COMPETITION = "Namibia Football"


def _teams(ctx: ArticleContext) -> tuple[str, str]:
    return ctx.home_team or "The home side", ctx.away_team or "the visitors"


def _venue(ctx: ArticleContext) -> str:
    return ctx.venue or "the venue"


def _competition(ctx: ArticleContext) -> str:
    return ctx.competition or "the competition"


def _kickoff(ctx: ArticleContext) -> str:
    if ctx.match_date is None:
        return "soon"
    return ctx.match_date.strftime("%A %d %B at %H:%M")


def _match_result(ctx: ArticleContext) -> ArticleDraft:
    home, away = _teams(ctx)
    home_goals = ctx.home_score or 0
    away_goals = ctx.away_score or 0
    score = f"{home_goals}-{away_goals}"

    if home_goals > away_goals:
        headline = f"{home} beat {away} {score}"
        verdict = f"{home} secured a {score} victory over {away}"
    elif away_goals > home_goals:
        headline = f"{away} win {score} away at {home}"
        verdict = f"{away} came away with a {away_goals}-{home_goals} win against {home}"
    else:
        headline = f"{home} and {away} draw {score}"
        verdict = f"{home} and {away} shared the points in a {score} draw"

    return ArticleDraft(
        title=f"{home} {score} {away}",
        summary=f"Match result: {headline} in {_competition(ctx)}.",
        content=(
            f"{verdict}. The match took place at {_venue(ctx)} as part of {_competition(ctx)}. "
            f"The result has implications for the league standings and both teams' season objectives."
        ),
    )


def _upcoming_match(ctx: ArticleContext) -> ArticleDraft:
    home, away = _teams(ctx)
    return ArticleDraft(
        title=f"Upcoming: {home} vs {away}",
        summary=f"Don't miss the upcoming match between {home} and {away}, kicking off {_kickoff(ctx)}.",
        content=(
            f"Football fans are looking forward to the clash between {home} and {away}. "
            f"The match takes place at {_venue(ctx)} and kicks off {_kickoff(ctx)}. "
            f"Both teams have been preparing for this fixture, which is part of {_competition(ctx)}."
        ),
    )


def _lineup(ctx: ArticleContext) -> ArticleDraft:
    home, away = _teams(ctx)
    content = (
        f"The starting lineups for {home} vs {away} have been confirmed. "
        f"{home} will field {len(ctx.home_lineup) or 11} players, while {away} have named "
        f"{len(ctx.away_lineup) or 11} for this {ctx.competition or 'match'} at {_venue(ctx)}."
    )
    if ctx.home_lineup:
        content += f"\n\n{home}: {', '.join(ctx.home_lineup)}."
    if ctx.away_lineup:
        content += f"\n\n{away}: {', '.join(ctx.away_lineup)}."

    return ArticleDraft(
        title=f"Lineup Revealed: {home} vs {away}",
        summary=f"{home} and {away} have announced their starting lineups for the upcoming match.",
        content=content,
    )


def _league_update(ctx: ArticleContext) -> ArticleDraft:
    competition = ctx.competition or DEFAULT_COMPETITION
    return ArticleDraft(
        title=f"League Update: {competition}",
        summary=f"Latest updates from {competition}.",
        content=(
            f"The {competition} continues to provide exciting action as teams compete for the top "
            f"positions. Recent matches have shown determination and skill from every side, and the "
            f"race remains tight as the season progresses."
        ),
    )


TEMPLATES = {
    MATCH_RESULT: _match_result,
    UPCOMING_MATCH: _upcoming_match,
    LINEUP: _lineup,
    LEAGUE_UPDATE: _league_update,
}


def render_fallback(ctx: ArticleContext) -> ArticleDraft:
    """Fill the template for ctx.kind (league update for unknown kinds), capped."""
    template = TEMPLATES.get(ctx.kind, _league_update)
    return clamp_draft(template(ctx))
