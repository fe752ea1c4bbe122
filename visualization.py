# visualization.py
import pygame
import numpy as np
import random
import logging
from typing import Callable, List, Optional, Sequence, Tuple
from config import config, ConfigurationError

def lens_sample_coordinates(grid_x: np.ndarray, grid_y: np.ndarray,
                            lenses: Sequence[Tuple[Tuple[float, float], float, float]]):
    """Maps every observed pixel to the background pixel it shows.

    Each lens deflects the line of sight toward its centre by `strength / d`
    (both in pixel units, strength being an area), the thin point-lens relation
    between image and source positions. Pixels closer to a lens centre than its
    radius see the event horizon.

    Args:
        grid_x, grid_y (np.ndarray): Pixel coordinates of the observed grid, same shape.
        lenses: `(center_px, radius_px, strength_px2)` triples.

    Returns:
        Tuple[np.ndarray, np.ndarray, np.ndarray]: Source x, source y, and a
        boolean mask of pixels inside any horizon.
    """
    source_x = grid_x.astype(np.float64)
    source_y = grid_y.astype(np.float64)
    horizon = np.zeros(grid_x.shape, dtype=bool)

    for (cx, cy), radius_px, strength_px2 in lenses:
        dx = grid_x - cx
        dy = grid_y - cy
        d = np.hypot(dx, dy)
        horizon |= d < radius_px
        safe_d = np.maximum(d, 1e-6)
        # deflection strength/d along the unit offset, i.e. offset * strength / d**2
        factor = strength_px2 / (safe_d * safe_d)
        source_x -= dx * factor
        source_y -= dy * factor

    return source_x, source_y, horizon

def build_starfield(width: int, height: int, star_count: int, seed: Optional[int] = None) -> pygame.Surface:
    """Draws a static, layered starfield used when no background image is available."""
    rng = random.Random(seed)
    surface = pygame.Surface((width, height))
    surface.fill(config.Visualization.BACKGROUND_COLOR)

    star_layers = [
        {'base_brightness': 0.35, 'size': 1, 'count': int(star_count * 0.6)},  # Farthest
        {'base_brightness': 0.65, 'size': 1, 'count': int(star_count * 0.3)},  # Mid
        {'base_brightness': 1.00, 'size': 2, 'count': int(star_count * 0.1)},  # Near
    ]
    for layer in star_layers:
        for _ in range(layer['count']):
            pos = (rng.randrange(width), rng.randrange(height))
            brightness = int(255 * layer['base_brightness'] * rng.uniform(0.5, 1.0))
            blue_tint = 1.05 if rng.random() < 0.15 else 1.0
            color = (brightness, brightness, min(255, int(brightness * blue_tint)))
            if layer['size'] <= 1:
                surface.set_at(pos, color)
            else:
                pygame.draw.circle(surface, color, pos, layer['size'])

    # Faint reference grid so the distortion is visible even in sparse regions
    grid_color = (25, 25, 55)
    spacing = max(8, height // 16)
    for x in range(0, width, spacing):
        pygame.draw.line(surface, grid_color, (x, 0), (x, height))
    for y in range(0, height, spacing):
        pygame.draw.line(surface, grid_color, (0, y), (width, y))
    return surface

class DragGesture:
    """Turns pointer drags into launch pairs for the simulation.

    The launch position is where the drag started. The launch vector points from
    the current pointer back to the start (pull back to throw), in sim units.
    """

    def __init__(self):
        self.start: Optional[np.ndarray] = None
        self.current: Optional[np.ndarray] = None

    @property
    def active(self) -> bool:
        return self.start is not None

    def begin(self, sim_pos: np.ndarray):
        self.start = np.array(sim_pos, dtype=np.float64)
        self.current = self.start.copy()

    def move(self, sim_pos: np.ndarray) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        if not self.active:
            return None
        self.current = np.array(sim_pos, dtype=np.float64)
        return self.launch_pair()

    def end(self, sim_pos: np.ndarray) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        if not self.active:
            return None
        self.current = np.array(sim_pos, dtype=np.float64)
        pair = self.launch_pair()
        self.cancel()
        return pair

    def cancel(self):
        self.start = None
        self.current = None

    def launch_pair(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.start.copy(), self.start - self.current

class Visualization:
    """Renders the lensed background, black hole outlines and the orbit preview.

    The distortion is evaluated on a grid `Lensing.DOWNSAMPLE` times coarser than
    the window: every grid point is mapped through `lens_sample_coordinates`, the
    background is gathered from those coordinates with NumPy fancy indexing, and
    the result is scaled up to the window.

    Sim space has its origin at the window centre, `+y` up, and one unit equal to
    half the window height.

    Attributes:
        screen (pygame.Surface | None): Display surface, `None` if pygame failed.
        visualization_enabled (bool): False after a critical initialization error.
        clock (pygame.time.Clock | None): Frame clock.
        font (pygame.font.Font | None): HUD font.
        gesture (DragGesture): Current pointer drag.
        lensing_enabled (bool): Cleared if the lens pass fails, so the plain
            background is drawn instead.
    """

    def __init__(self, background_path: Optional[str] = None, headless: bool = False):
        self.width = config.Visualization.SCREEN_WIDTH_PX
        self.height = config.Visualization.SCREEN_HEIGHT_PX
        if not (isinstance(self.width, int) and self.width > 0 and isinstance(self.height, int) and self.height > 0):
            raise ConfigurationError("SCREEN_WIDTH_PX and SCREEN_HEIGHT_PX must be positive integers.")

        self.scale = self.height / 2.0 # Pixels per sim unit
        self.gesture = DragGesture()
        self.lensing_enabled = True
        self.visualization_enabled = True
        self.screen = None
        self.clock = None
        self.font = None

        try:
            pygame.init()
            if headless:
                self.screen = pygame.Surface((self.width, self.height))
            else:
                self.screen = pygame.display.set_mode((self.width, self.height))
                pygame.display.set_caption("Gravitational Lensing Sandbox")
            self.clock = pygame.time.Clock()
        except pygame.error as e_disp:
            logging.critical(f"Error setting display mode: {e_disp}. Visualization disabled.", exc_info=True)
            self.visualization_enabled = False
            return

        try:
            self.font = pygame.font.Font(None, 22)
        except pygame.error as e_font:
            logging.error(f"Pygame error initializing fonts: {e_font}. HUD text disabled.", exc_info=True)
            self.font = None

        self.background = self._load_background(background_path if background_path is not None
                                                else config.Visualization.BACKGROUND_IMAGE)
        self._prepare_lens_grid()
        logging.info(f"Visualization initialized at {self.width}x{self.height}px "
                     f"(lens grid {self.grid_x.shape[0]}x{self.grid_x.shape[1]}).")

    def _load_background(self, path: Optional[str]) -> pygame.Surface:
        if path:
            try:
                image = pygame.image.load(path)
                logging.info(f"Loaded background image '{path}' ({image.get_width()}x{image.get_height()}).")
                if pygame.display.get_surface() is not None:
                    image = image.convert()
                return pygame.transform.smoothscale(image, (self.width, self.height))
            except (pygame.error, FileNotFoundError, ValueError) as e_image:
                logging.warning(f"Could not load background image '{path}': {e_image}. Using starfield.")
        return build_starfield(self.width, self.height, config.Visualization.STAR_COUNT)

    def _prepare_lens_grid(self):
        ds = config.Lensing.DOWNSAMPLE
        grid_w = max(1, self.width // ds)
        grid_h = max(1, self.height // ds)
        # surfarray is indexed [x, y]; grid coordinates are the centres of the coarse cells in screen pixels
        xs = (np.arange(grid_w) + 0.5) * (self.width / grid_w)
        ys = (np.arange(grid_h) + 0.5) * (self.height / grid_h)
        self.grid_x, self.grid_y = np.meshgrid(xs, ys, indexing='ij')
        self.background_pixels = pygame.surfarray.array3d(self.background)

    def sim_to_screen(self, sim_pos: np.ndarray) -> Tuple[int, int]:
        """Converts a sim-space position to integer window coordinates."""
        return (int(round(self.width / 2 + sim_pos[0] * self.scale)),
                int(round(self.height / 2 - sim_pos[1] * self.scale)))

    def screen_to_sim(self, screen_pos: Sequence[float]) -> np.ndarray:
        """Converts window coordinates to a sim-space position."""
        return np.array([(screen_pos[0] - self.width / 2) / self.scale,
                         (self.height / 2 - screen_pos[1]) / self.scale], dtype=np.float64)

    def lenses_in_pixels(self, render_data) -> List[Tuple[Tuple[int, int], float, float]]:
        """Converts (screen position, radius, strength) tuples to pixel units, truncated to `MAX_LENSES`."""
        capped = render_data[:config.Visualization.MAX_LENSES]
        if len(render_data) > len(capped) and config.Debug.DEBUG_MODE:
            logging.debug(f"{len(render_data) - len(capped)} black holes beyond the display limit are not lensed.")
        return [(position, radius * self.scale, strength * self.scale ** 2)
                for position, radius, strength in capped]

    def _draw_lensed_background(self, lenses):
        if not self.lensing_enabled:
            self.screen.blit(self.background, (0, 0))
            return
        try:
            source_x, source_y, horizon = lens_sample_coordinates(self.grid_x, self.grid_y, lenses)
            ix = np.clip(source_x, 0, self.width - 1).astype(np.intp)
            iy = np.clip(source_y, 0, self.height - 1).astype(np.intp)
            sampled = self.background_pixels[ix, iy]
            sampled[horizon] = config.Lensing.EVENT_HORIZON_COLOR
            coarse = pygame.surfarray.make_surface(sampled)
            if coarse.get_size() != (self.width, self.height):
                coarse = pygame.transform.scale(coarse, (self.width, self.height))
            self.screen.blit(coarse, (0, 0))
        except (pygame.error, ValueError, IndexError, MemoryError) as e_lens:
            logging.error(f"Lens pass failed: {e_lens}. Falling back to the undistorted background.", exc_info=True)
            self.lensing_enabled = False
            self.screen.blit(self.background, (0, 0))

    def _draw_outlines(self, lenses):
        for index, (center, radius_px, _strength) in enumerate(lenses):
            color = config.Visualization.ANCHOR_OUTLINE_COLOR if index == 0 else config.Visualization.OUTLINE_COLOR
            pygame.draw.circle(self.screen, color, center, max(1, int(radius_px)), 1)

    def _draw_prediction(self, predicted_points: Sequence[np.ndarray]):
        if len(predicted_points) < 2:
            return
        screen_points = [self.sim_to_screen(p) for p in predicted_points]
        pygame.draw.lines(self.screen, config.Prediction.LINE_COLOR, False, screen_points,
                          config.Prediction.LINE_WIDTH)

    def _draw_drag(self):
        if not self.gesture.active:
            return
        start = self.sim_to_screen(self.gesture.start)
        current = self.sim_to_screen(self.gesture.current)
        pygame.draw.line(self.screen, config.Visualization.DRAG_LINE_COLOR, start, current, 1)
        pygame.draw.circle(self.screen, config.Visualization.OUTLINE_COLOR, start,
                           max(1, int(config.Bodies.NEW_BODY_RADIUS * self.scale)), 1)

    def _draw_hud(self, body_count: int, paused: bool):
        if self.font is None:
            return
        fps = self.clock.get_fps() if self.clock else 0.0
        text = f"Black holes: {body_count}   FPS: {fps:.0f}" + ("   [PAUSED]" if paused else "")
        self.screen.blit(self.font.render(text, True, (220, 220, 220)), (10, 10))

    def render(self, simulation, predicted_points: Sequence[np.ndarray] = (), paused: bool = False, flip: bool = True):
        """Draws one frame: lensed background, outlines, drag sling, preview line and HUD."""
        if not self.visualization_enabled or self.screen is None:
            return
        try:
            lenses = self.lenses_in_pixels(simulation.render_data(self.sim_to_screen))
            self._draw_lensed_background(lenses)
            if config.Visualization.SHOW_BODY_OUTLINES:
                self._draw_outlines(lenses)
            self._draw_drag()
            self._draw_prediction(predicted_points)
            self._draw_hud(len(simulation), paused)
            if flip and pygame.display.get_surface() is not None:
                pygame.display.flip()
        except pygame.error as e_pygame_render:
            logging.error(f"Pygame error during render: {e_pygame_render}. Attempting to continue.", exc_info=True)

    def tick(self) -> float:
        """Waits for the next frame and returns the elapsed time in seconds."""
        if self.clock is None:
            return 1.0 / config.Visualization.FPS
        return self.clock.tick(config.Visualization.FPS) / 1000.0

    def handle_events(self,
                      on_drag_move: Callable[[np.ndarray, np.ndarray], None] = None,
                      on_drag_release: Callable[[np.ndarray, np.ndarray], None] = None,
                      on_key: Callable[[int], None] = None) -> bool:
        """Processes the pygame event queue.

        -   QUIT or Escape returns False to stop the main loop.
        -   Left button down starts a drag; motion while dragging calls
            `on_drag_move(launch_position, launch_vector)`; left button up calls
            `on_drag_release(launch_position, launch_vector)`.
        -   Right button cancels an active drag.
        -   Other key presses are forwarded to `on_key(key)`.

        Returns:
            bool: False if the application should stop, True otherwise.
        """
        try:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    logging.info("QUIT event received via Pygame window. Signaling shutdown.")
                    return False

                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        logging.info("Escape pressed. Signaling shutdown.")
                        return False
                    if on_key:
                        on_key(event.key)

                elif event.type == pygame.MOUSEBUTTONDOWN:
                    if event.button == 1:
                        self.gesture.begin(self.screen_to_sim(event.pos))
                    elif event.button == 3 and self.gesture.active:
                        self.gesture.cancel()
                        if on_drag_move:
                            on_drag_move(None, None)

                elif event.type == pygame.MOUSEMOTION and self.gesture.active:
                    pair = self.gesture.move(self.screen_to_sim(event.pos))
                    if pair is not None and on_drag_move:
                        on_drag_move(*pair)

                elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                    pair = self.gesture.end(self.screen_to_sim(event.pos))
                    if pair is not None and on_drag_release:
                        on_drag_release(*pair)
            return True

        except pygame.error as e_pygame_event:
            logging.error(f"Pygame error during event handling: {e_pygame_event}. Attempting to continue.", exc_info=True)
            return True

    def close(self):
        pygame.quit()
