from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
import asyncio
import base64
import time
import numpy as np
import cv2
import logging
import concurrent.futures

from app.backend.api.deps import get_pipeline
from app.backend.ml.pipeline import GesturePipeline

router = APIRouter()

logger = logging.getLogger("gesture_ws")


def decode_frame_bgr(data_url: str) -> np.ndarray:
    _, encoded = data_url.split(",", 1)
    img_bytes = base64.b64decode(encoded)
    img = cv2.imdecode(np.frombuffer(img_bytes, np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("cv2.imdecode returned None")
    return img


def open_detector(settings):
    # mediapipe тянем только когда реально пришёл кадр
    from app.backend.ml.detector import HandDetector

    return HandDetector.from_settings(settings)


@router.websocket("/ws/gesture")
async def gesture_ws(ws: WebSocket, pipeline: GesturePipeline = Depends(get_pipeline)):
    await ws.accept()

    settings = pipeline.settings
    session = pipeline.new_session()
    alive = True

    last_ping = time.monotonic()

    # очередь строго на 1 элемент => "всегда последний кадр", без накапливания лага
    q: asyncio.Queue[dict] = asyncio.Queue(maxsize=1)

    frames_in = 0
    frames_dropped = 0
    decode_ok = 0
    decode_err = 0
    infer_n = 0
    last_debug = 0.0

    async def receiver():
        nonlocal alive, frames_in, frames_dropped
        try:
            while True:
                try:
                    msg = await ws.receive_json()
                except (ValueError, KeyError, TypeError):
                    # не JSON или бинарное сообщение
                    logger.warning("non-JSON message ignored")
                    await ws.send_json({"type": "error", "error": "bad_message"})
                    continue
                if not isinstance(msg, dict):
                    await ws.send_json({"type": "error", "error": "bad_message"})
                    continue

                kind = msg.get("type")
                if kind == "control":
                    session.running = bool(msg.get("running", not session.running))
                    await ws.send_json({"type": "status", "running": session.running})
                    continue
                if kind not in ("frame", "landmarks"):
                    continue

                if not session.running:
                    frames_dropped += 1
                    await ws.send_json({"type": "skipped", "reason": "paused"})
                    continue

                frames_in += 1
                if q.full():
                    frames_dropped += 1
                    q.get_nowait()
                    await ws.send_json({"type": "skipped", "reason": "superseded"})
                q.put_nowait(msg)
        except WebSocketDisconnect:
            alive = False
            raise

    async def pinger():
        nonlocal last_ping, alive
        while alive:
            now = time.monotonic()
            if (now - last_ping) > settings.ping_interval_s:
                last_ping = now
                try:
                    await ws.send_json({"type": "ping"})
                except (WebSocketDisconnect, RuntimeError):
                    alive = False
                    break
            await asyncio.sleep(0.25)

    recv_task = None
    ping_task = None

    # детектор и классификатор в отдельном single-thread executor:
    # landmarker живёт и вызывается всегда из одного потока, кадры не обрабатываются параллельно.
    loop = asyncio.get_running_loop()
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    detector = None
    detector_error = None

    try:
        recv_task = asyncio.create_task(receiver())
        ping_task = asyncio.create_task(pinger())

        last_infer = 0.0
        infer_every_s = max(0.0, settings.infer_every_ms / 1000.0)

        while alive and not recv_task.done():
            try:
                msg = await asyncio.wait_for(q.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            now = time.monotonic()

            if infer_every_s > 0 and (now - last_infer) < infer_every_s:
                await ws.send_json({"type": "skipped", "reason": "throttled"})
                continue
            last_infer = now

            if msg["type"] == "frame":
                data_url = msg.get("data")
                try:
                    if not isinstance(data_url, str):
                        raise ValueError("frame data must be a data URL string")
                    frame = decode_frame_bgr(data_url)
                    decode_ok += 1
                except (ValueError, cv2.error) as e:
                    decode_err += 1
                    await ws.send_json({"type": "error", "error": "bad_frame", "message": str(e)})
                    continue

                if detector is None and detector_error is None:
                    try:
                        detector = await loop.run_in_executor(executor, open_detector, settings)
                    except (FileNotFoundError, RuntimeError, ValueError) as e:
                        detector_error = str(e)
                        logger.error("hand detector unavailable: %s", e)
                if detector is None:
                    await ws.send_json({"type": "error", "error": "detector_unavailable", "message": detector_error})
                    continue

                # timestamp_ms для MediaPipe
                try:
                    hands = await loop.run_in_executor(executor, detector.detect_bgr, frame, int(now * 1000))
                except (RuntimeError, ValueError) as e:
                    logger.error("hand detection failed: %s", e)
                    await ws.send_json({"type": "error", "error": "detection_failed", "message": str(e)})
                    continue
            else:
                landmarks = msg.get("landmarks")
                hands = [landmarks] if landmarks else None

            out = await loop.run_in_executor(executor, pipeline.process, session, hands)
            infer_n += 1

            try:
                await ws.send_json(out.to_dict())
                if out.captured is not None:
                    await ws.send_json({
                        "type": "captured",
                        "label": out.captured.label,
                        "index": out.captured.class_index,
                        "text": session.text,
                    })
            except WebSocketDisconnect:
                alive = False
                break

            if settings.debug_ws and (now - last_debug) > 1.0:
                last_debug = now
                logger.info(
                    f"frames_in={frames_in} dropped={frames_dropped} "
                    f"decode_ok={decode_ok} decode_err={decode_err} "
                    f"infer={infer_n} last={out.label}:{out.frames}/{out.required_frames}"
                )

    except WebSocketDisconnect:
        pass
    finally:
        alive = False

        tasks = [t for t in (recv_task, ping_task) if t is not None]
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if detector is not None:
            await loop.run_in_executor(executor, detector.close)
        executor.shutdown(wait=False)
