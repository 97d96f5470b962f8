"""storycompose — ephemeral story composition and rendering.

Build a story from a background, one image or video, and one styled,
draggable caption (scene, positions), rasterize it (compositor), fit it
onto the fixed portrait canvas (normalize), burn it into a video when
the media is one (muxer, engine), and finalize it into a single PNG or
MP4 for the publish step (finalize, session).
"""
