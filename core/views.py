from typing import Optional

import discord


class _DismissButton(discord.ui.Button):
    def __init__(self, label: str) -> None:
        super().__init__(label=label, style=discord.ButtonStyle.secondary)

    async def callback(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        if self.view is not None:
            for item in self.view.children:
                item.disabled = True
            self.view.stop()
            await interaction.response.edit_message(view=self.view)


class ResponseView(discord.ui.View):
    """Attaches a dismiss button that only the invoking member can press."""

    def __init__(self, *, author_id: Optional[int] = None, label: str = "Dismiss", timeout: Optional[float] = 60.0) -> None:
        super().__init__(timeout=timeout)
        self.author_id = author_id
        self.add_item(_DismissButton(label))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if self.author_id is None or interaction.user.id == self.author_id:
            return True
        await interaction.response.send_message("Only the person who ran this command can dismiss it.", ephemeral=True)
        return False
