# visualization.py
"""
Handles the visualization of the swarm using Pygame.
"""
import datetime
import logging
import pygame
import numpy as np
from constants import (
    FULLSCREEN, WINDOW_SIZE, FPS, BG_BRIGHTNESS, MOTION_BLUR_ALPHA,
    DOT_SIZE_STANDARD, DOT_SIZE_HIGH_DETAIL, FLICKER_AMPLITUDE,
    UI_BACKGROUND_ALPHA, COLOR_SCHEMES, MIN_PARTICLES, MAX_PARTICLES
)
from palette import PaletteContext, PaletteProvider, SchemePalette, palette_label
from utils import clamp, map_range
from typing import Dict, Any, Optional, Tuple

# Forward reference for type hinting to avoid circular import
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from simulation import Simulation


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, vis_params: Optional[Dict[str, Any]] = None,
#              palette: Optional[PaletteProvider] = None):
#     - Inputs:
#       - vis_params: the "visualization" section of config.json
#         ("fullscreen", "window_size", "color_scheme", "show_ui",
#         "show_help").
#       - palette: colour provider; defaults to SchemePalette.
#     - Side Effects: Initializes Pygame and creates a display surface.
#
#   - draw(self, simulation: "Simulation") -> bool:
#     - Outputs:
#       - bool: False if the user has quit, True otherwise.
#     - Side Effects: Handles Pygame events (which may issue commands on
#       the simulation), renders particles and UI, and paces to FPS.

HELP_LINES = [
    'H - toggle UI (buttons, label, help)',
    'LEFT / RIGHT - cycle shapes manually (auto off)',
    'A - return to AUTO mode (time-of-day colors + auto shapes)',
    '1 - force MIDNIGHT palette',
    '2 - force DAWN palette',
    '3 - force NOON palette',
    '4 - force DUSK palette',
    '6 - force CAMO palette',
    '5 - toggle DETAIL mode (Standard / High)',
    '',
    f'+ Dots / - Dots - adjust particle count ({MIN_PARTICLES}-{MAX_PARTICLES})',
    '',
    'Shape notes:',
    '- FLAG: USA red/white/blue stripes.',
    '- UCF: black-gold-white university colors.',
    '- VAMOS: Orlando City purple/gold/white.',
    '- MAGIC: team palette + logo silhouette.',
    '- VALOR: dedicated camouflage palette.',
    '- PRIDE: each letter is a solid rainbow color.',
    '- EOLA: triggers a swan-like glide transition.',
    '',
    'High detail mode uses a larger internal canvas',
    'and slightly smaller dots for more defined shapes.',
]

SCHEME_KEYS = {
    pygame.K_1: 'midnight',
    pygame.K_2: 'dawn',
    pygame.K_3: 'noon',
    pygame.K_4: 'dusk',
    pygame.K_6: 'camo',
}

def hsb_to_rgb(h: float, s: float, b: float) -> pygame.Color:
    """Converts an HSB triple (0-360, 0-100, 0-100) to a pygame colour."""
    color = pygame.Color(0, 0, 0)
    color.hsva = (h % 360, clamp(s, 0, 100), clamp(b, 0, 100), 100)
    return color

class Visualizer:
    """
    Renders the swarm and its status UI, and turns input into commands.
    """
    def __init__(self, vis_params: Optional[Dict[str, Any]] = None,
                 palette: Optional[PaletteProvider] = None):
        """
        Initializes Pygame and the display window.
        """
        vis_params = vis_params or {}
        pygame.init()
        pygame.font.init()

        if vis_params.get('fullscreen', FULLSCREEN):
            display_info = pygame.display.Info()
            width, height = display_info.current_w, display_info.current_h
            self.screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
        else:
            width, height = vis_params.get('window_size', WINDOW_SIZE)
            self.screen = pygame.display.set_mode((width, height), pygame.RESIZABLE)

        self.width = width
        self.height = height

        pygame.display.set_caption("Swarm Silhouettes")
        self.clock = pygame.time.Clock()

        self.background = hsb_to_rgb(0, 0, BG_BRIGHTNESS)
        self._build_blur_surface()

        self.palette = palette if palette is not None else SchemePalette()
        self.color_scheme = vis_params.get('color_scheme', 'auto')
        if self.color_scheme not in COLOR_SCHEMES:
            logging.warning(f"Unknown color scheme '{self.color_scheme}', using 'auto'.")
            self.color_scheme = 'auto'
        self.ui_visible = vis_params.get('show_ui', True)
        self.show_help = vis_params.get('show_help', False)

        try:
            self.font_title = pygame.font.SysFont("Segoe UI", 16, bold=True)
            self.font_main = pygame.font.SysFont("Segoe UI", 14)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_title = pygame.font.SysFont(None, 20, bold=True)
            self.font_main = pygame.font.SysFont(None, 18)

        # --- Dots Button Configuration ---
        self.add_button_rect = pygame.Rect(10, 30, 72, 26)
        self.remove_button_rect = pygame.Rect(90, 30, 72, 26)

        # --- UI Color Palette ---
        self.button_color = (80, 80, 80)
        self.button_hover_color = (110, 110, 110)
        self.text_color_title = (255, 255, 255)
        self.text_color_label = hsb_to_rgb(0, 0, 80)
        self.text_color_help = hsb_to_rgb(0, 0, 95)

        logging.info(f"Visualizer initialized with Pygame display ({width}x{height}).")

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def _build_blur_surface(self):
        # Drawn over the previous frame each tick, fading it into trails.
        self.blur_surface = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        bg = self.background
        self.blur_surface.fill((bg.r, bg.g, bg.b, MOTION_BLUR_ALPHA))

    def _palette_context(self, simulation: "Simulation") -> PaletteContext:
        return PaletteContext(
            shape_token=simulation.shape_token,
            scheme=self.color_scheme,
            hour=datetime.datetime.now().hour,
        )

    def _handle_key(self, key: int, simulation: "Simulation") -> bool:
        if key == pygame.K_ESCAPE:
            logging.info("ESC key pressed. Shutting down visualizer.")
            return False

        if key == pygame.K_LEFT:
            simulation.previous_shape()
        elif key == pygame.K_RIGHT:
            simulation.next_shape()
        elif key == pygame.K_h:
            self.ui_visible = not self.ui_visible
            # Hiding the UI also hides help; revealing it brings help back.
            self.show_help = self.ui_visible
            logging.info(f"UI {'shown' if self.ui_visible else 'hidden'}.")
        elif key == pygame.K_a:
            self.color_scheme = 'auto'
            simulation.resume_auto()
        elif key in SCHEME_KEYS:
            self.color_scheme = SCHEME_KEYS[key]
            logging.info(f"Color scheme forced to '{self.color_scheme}'.")
        elif key == pygame.K_5:
            simulation.toggle_detail()
        return True

    def _handle_events(self, simulation: "Simulation", mouse_pos: Tuple[int, int]) -> bool:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False

            if event.type == pygame.KEYDOWN:
                if not self._handle_key(event.key, simulation):
                    return False

            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and self.ui_visible:
                if self.add_button_rect.collidepoint(mouse_pos):
                    simulation.add_particles()
                elif self.remove_button_rect.collidepoint(mouse_pos):
                    simulation.remove_particles()

            if event.type == pygame.VIDEORESIZE:
                self.width, self.height = event.w, event.h
                self._build_blur_surface()
                simulation.resize(event.w, event.h)
        return True

    def _draw_button(self, rect: pygame.Rect, label: str, mouse_pos: Tuple[int, int]):
        is_hovered = rect.collidepoint(mouse_pos)
        color = self.button_hover_color if is_hovered else self.button_color
        pygame.draw.rect(self.screen, color, rect, border_radius=5)
        text_surf = self.font_main.render(label, True, self.text_color_title)
        self.screen.blit(text_surf, text_surf.get_rect(center=rect.center))

    def _status_label(self, simulation: "Simulation") -> str:
        label = f"Mode: {self.color_scheme.upper()}"
        label += f" | Dots: {simulation.particle_count}"
        label += " | Detail: HIGH" if simulation.high_detail else " | Detail: STANDARD"
        if not simulation.auto_cycle:
            label += " | SHAPES: MANUAL"
        label += f" | Shape: {simulation.shape_token}"
        label += f" | {palette_label(simulation.shape_token)}"
        return label

    def _draw_help_overlay(self):
        panel_w = min(self.width * 0.6, 480)
        panel_h = min(self.height * 0.6, 460)
        x = self.width * 0.5 - panel_w * 0.5
        y = self.height * 0.5 - panel_h * 0.5

        panel = pygame.Surface((int(panel_w), int(panel_h)), pygame.SRCALPHA)
        pygame.draw.rect(panel, (0, 0, 0, UI_BACKGROUND_ALPHA), panel.get_rect(), border_radius=16)
        self.screen.blit(panel, (x, y))

        margin_x = x + 18
        line_y = y + 16
        title = self.font_title.render('Controls & Color Schemes', True, self.text_color_help)
        self.screen.blit(title, (margin_x, line_y))
        line_y += 28

        for line in HELP_LINES:
            if line:
                surf = self.font_main.render(line, True, self.text_color_help)
                self.screen.blit(surf, (margin_x, line_y))
            line_y += 18

    def _draw_particles(self, simulation: "Simulation"):
        context = self._palette_context(simulation)
        base_size = DOT_SIZE_HIGH_DETAIL if simulation.high_detail else DOT_SIZE_STANDARD
        frame = simulation.frame

        for p in simulation.swarm:
            speed = float(np.hypot(p.vel[0], p.vel[1]))
            size = base_size * map_range(speed, 0, p.max_speed, 0.8, 1.4)

            hue = p.display_hue
            h, s, b = self.palette.color(hue, context)
            flicker = b + FLICKER_AMPLITUDE * np.sin(frame * 0.05 + hue * 0.01)
            color = hsb_to_rgb(h, s, clamp(flicker, 0, 100))

            pygame.draw.circle(
                self.screen, color,
                (int(p.pos[0]), int(p.pos[1])),
                max(1, int(size * 0.5))
            )

    def draw(self, simulation: "Simulation") -> bool:
        """
        Draws the swarm and UI, and handles events.

        Returns:
            bool: False if the simulation should exit, True otherwise.
        """
        mouse_pos = pygame.mouse.get_pos()
        if not self._handle_events(simulation, mouse_pos):
            return False

        self.screen.blit(self.blur_surface, (0, 0))
        self._draw_particles(simulation)

        if self.ui_visible:
            label = self.font_main.render(self._status_label(simulation), True, self.text_color_label)
            self.screen.blit(label, (10, 10))
            self._draw_button(self.add_button_rect, "+ Dots", mouse_pos)
            self._draw_button(self.remove_button_rect, "- Dots", mouse_pos)
            if self.show_help:
                self._draw_help_overlay()

        pygame.display.flip()
        self.clock.tick(FPS)
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
