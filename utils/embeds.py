"""
Discord Embed Templates
Provides consistent embed formatting across the bot
"""

import discord
from datetime import datetime
from typing import Optional, Dict, Any, List
from config import EMBED_COLORS

STATUS_ICONS = {
    'pending': '⏳',
    'resolved': '✅',
    'revoked': '🚫',
    'forfeited': '🏳️',
}

class EmbedTemplates:
    @staticmethod
    def create_base_embed(title: str, description: str = "", color: int = EMBED_COLORS['info'],
                         author_name: str = None, author_icon: str = None) -> discord.Embed:
        """Create a base embed with common formatting"""
        embed = discord.Embed(
            title=title,
            description=description,
            color=color,
            timestamp=datetime.now()
        )

        if author_name:
            embed.set_author(name=author_name, icon_url=author_icon)

        embed.set_footer(text="LadderBot • Challenge Ladder")
        return embed

    @staticmethod
    def error_embed(title: str = "Error", description: str = "") -> discord.Embed:
        """Create an error embed"""
        return EmbedTemplates.create_base_embed(
            title=f"❌ {title}",
            description=description,
            color=EMBED_COLORS['error']
        )

    @staticmethod
    def success_embed(title: str = "Success", description: str = "") -> discord.Embed:
        """Create a success embed"""
        return EmbedTemplates.create_base_embed(
            title=f"✅ {title}",
            description=description,
            color=EMBED_COLORS['success']
        )

    @staticmethod
    def warning_embed(title: str = "Warning", description: str = "") -> discord.Embed:
        """Create a warning embed"""
        return EmbedTemplates.create_base_embed(
            title=f"⚠️ {title}",
            description=description,
            color=EMBED_COLORS['warning']
        )

    @staticmethod
    def score_text(challenge: Dict[str, Any]) -> str:
        """Score as 'X-Y' (challenger first), or 'No contest' for a scoreless resolution"""
        if challenge.get('challenger_score') is None or challenge.get('challengee_score') is None:
            return "No contest" if challenge['status'] == 'resolved' else "—"
        return f"{challenge['challenger_score']}-{challenge['challengee_score']}"

    @staticmethod
    def challenge_embed(challenge: Dict[str, Any], challenger: Dict[str, Any],
                        challengee: Dict[str, Any]) -> discord.Embed:
        """Create an embed describing a single challenge"""
        status = challenge['status']
        embed = EmbedTemplates.create_base_embed(
            title=f"⚔️ Challenge #{challenge['challenge_id']}",
            description=f"**{challenger['username']}** challenged **{challengee['username']}**",
            color=EMBED_COLORS['challenge']
        )

        embed.add_field(
            name="🗡️ Challenger",
            value=f"{challenger['username']} (#{challenger['rank']}, Tier {challenger.get('tier') or 'None'})",
            inline=True
        )
        embed.add_field(
            name="🛡️ Challengee",
            value=f"{challengee['username']} (#{challengee['rank']}, Tier {challengee.get('tier') or 'None'})",
            inline=True
        )
        embed.add_field(
            name="📌 Status",
            value=f"{STATUS_ICONS.get(status, '')} {status.title()}",
            inline=True
        )

        if status != 'pending':
            embed.add_field(name="📊 Score", value=EmbedTemplates.score_text(challenge), inline=True)

        embed.add_field(name="📝 Challenge ID", value=f"#{challenge['challenge_id']}", inline=True)
        return embed

    @staticmethod
    def rank_exchange_embed(exchange: Dict[str, Any], player_a: Dict[str, Any],
                            player_b: Dict[str, Any]) -> discord.Embed:
        """Create an embed announcing a rank exchange"""
        embed = EmbedTemplates.create_base_embed(
            title="🔄 Ranks Exchanged",
            color=EMBED_COLORS['rank']
        )
        embed.add_field(
            name=player_a['username'],
            value=f"#{exchange['rank_a_before']} → #{exchange['rank_b_before']}",
            inline=True
        )
        embed.add_field(
            name=player_b['username'],
            value=f"#{exchange['rank_b_before']} → #{exchange['rank_a_before']}",
            inline=True
        )
        return embed

    @staticmethod
    def ladder_embed(players: List[Dict[str, Any]], title: str = "Ladder") -> discord.Embed:
        """Create a ladder standings embed"""
        embed = EmbedTemplates.create_base_embed(
            title=f"🏆 {title}",
            color=EMBED_COLORS['rank']
        )

        if not players:
            embed.description = "No players on the ladder yet."
            return embed

        lines = []
        current_tier = object()
        for player in players:
            if player['tier'] != current_tier:
                current_tier = player['tier']
                header = f"Tier {current_tier}" if current_tier else "Unranked"
                lines.append(f"\n**{header}**")
            lines.append(f"`#{player['rank']:>3}` {player['username']}")

        embed.description = "\n".join(lines).strip()
        return embed

    @staticmethod
    def profile_embed(profile: Dict[str, Any], member: Optional[discord.Member] = None) -> discord.Embed:
        """Create a player profile embed"""
        embed = EmbedTemplates.create_base_embed(
            title=f"📊 {profile['username']}",
            color=EMBED_COLORS['info']
        )

        if member and member.avatar:
            embed.set_thumbnail(url=member.avatar.url)

        embed.add_field(name="🏆 Rank", value=f"**#{profile['rank']}**", inline=True)
        embed.add_field(name="🎖️ Tier", value=f"**{profile['tier'] or 'None'}**", inline=True)
        embed.add_field(name="📈 Record", value=f"**{profile['wins']}W - {profile['losses']}L**", inline=True)
        embed.add_field(name="📊 Win Rate", value=f"**{profile['win_rate']:.1f}%**", inline=True)
        embed.add_field(name="⏳ Pending", value=f"**{profile['pending_challenges']}**", inline=True)

        if profile.get('joined_date'):
            join_date = datetime.fromisoformat(profile['joined_date']).strftime('%B %d, %Y')
            embed.add_field(name="📅 Joined", value=join_date, inline=True)

        return embed

    @staticmethod
    def challenge_list_embed(challenges: List[Dict[str, Any]], names: Dict[int, str],
                             title: str = "Challenges") -> discord.Embed:
        """Create an embed listing challenges, newest first"""
        embed = EmbedTemplates.create_base_embed(
            title=f"⚔️ {title}",
            color=EMBED_COLORS['challenge']
        )

        if not challenges:
            embed.description = "No challenges found."
            return embed

        lines = []
        for challenge in challenges:
            challenger = names.get(challenge['challenger_id'], 'Unknown')
            challengee = names.get(challenge['challengee_id'], 'Unknown')
            icon = STATUS_ICONS.get(challenge['status'], '')
            line = f"{icon} `#{challenge['challenge_id']}` {challenger} vs {challengee}"
            if challenge['status'] != 'pending':
                line += f" • {EmbedTemplates.score_text(challenge)}"
            lines.append(line)

        embed.description = "\n".join(lines)
        return embed

    @staticmethod
    def help_embed(command_prefix: str) -> discord.Embed:
        """Create help embed"""
        embed = EmbedTemplates.create_base_embed(
            title="📖 LadderBot Commands",
            description="Climb the ladder by challenging players ranked above you.",
            color=EMBED_COLORS['info']
        )

        embed.add_field(
            name="🧍 Players",
            value=(
                f"`{command_prefix}register` - Join the bottom of the ladder\n"
                f"`{command_prefix}ladder [count]` - View standings\n"
                f"`{command_prefix}profile [@user]` - View a profile"
            ),
            inline=False
        )
        embed.add_field(
            name="⚔️ Challenges",
            value=(
                f"`{command_prefix}challenge @user` - Challenge a player\n"
                f"`{command_prefix}revoke <id>` - Revoke your challenge\n"
                f"`{command_prefix}resolve <id> <X-Y>` - Report a score (challenger first)\n"
                f"`{command_prefix}forfeit <id>` - Close a challenge without a score\n"
                f"`{command_prefix}challenges [@user]` - List challenges"
            ),
            inline=False
        )
        embed.add_field(
            name="🛠️ Admin",
            value=(
                f"`{command_prefix}swapranks @a @b` - Exchange two players' ranks\n"
                f"`{command_prefix}forfeitstale` - Forfeit stale pending challenges"
            ),
            inline=False
        )
        return embed
