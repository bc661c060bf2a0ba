"""Capture device enumeration and listing."""

import logging

logger = logging.getLogger(__name__)


def list_devices():
    """List the devices the PCM block tap can record from."""
    print("\n" + "=" * 65)
    print("INPUT DEVICES (for --device N)")
    print("=" * 65)

    _list_input_devices()

    print("\n" + "=" * 65)
    print("LOOPBACK DEVICES (for --loopback --device N)")
    print("=" * 65)

    _list_loopback_devices()


def _list_input_devices():
    """List input devices, marking the ones that carry system playback."""
    try:
        import pyaudio

        p = pyaudio.PyAudio()

        for i in range(p.get_device_count()):
            info = p.get_device_info_by_index(i)
            if info["maxInputChannels"] > 0:
                name = info["name"]
                rate = int(info["defaultSampleRate"])
                channels = int(info["maxInputChannels"])
                is_mix = "立体声混音" in name or "stereo mix" in name.lower() or "monitor" in name.lower()
                marker = " ★ PLAYBACK" if is_mix else ""
                print(f"  [{i:2d}] {name} ({rate}Hz, {channels}ch){marker}")

        p.terminate()
    except ImportError:
        print("  (pyaudio not installed)")
    except Exception as e:
        print(f"  Error listing input devices: {e}")


def _list_loopback_devices():
    """List WASAPI loopback devices (Windows only)."""
    try:
        import pyaudiowpatch as pyaudio

        p = pyaudio.PyAudio()

        default_name = ""
        try:
            wasapi_info = p.get_host_api_info_by_type(pyaudio.paWASAPI)
            default_name = p.get_device_info_by_index(wasapi_info["defaultOutputDevice"])["name"]
        except Exception as e:
            logger.debug(f"No default WASAPI output: {e}")

        for i in range(p.get_device_count()):
            dev = p.get_device_info_by_index(i)
            if dev.get("isLoopbackDevice"):
                name = dev["name"].replace(" [Loopback]", "")
                rate = int(dev["defaultSampleRate"])
                marker = " ★ DEFAULT" if default_name and default_name in dev["name"] else ""
                print(f"  [{i:2d}] {name} ({rate}Hz){marker}")

        p.terminate()
    except ImportError:
        print("  (pyaudiowpatch not installed)")
        print("\n💡 Install for lossless system audio capture on Windows:")
        print("   pip install pyaudiowpatch")
    except Exception as e:
        print(f"  Error listing loopback devices: {e}")
