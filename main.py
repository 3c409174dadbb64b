# main.py
#
# NoFi chat from the terminal. Sends short text messages as tones, listens
# for other stations through the microphone, and relays what it hears so
# messages hop between devices that cannot hear each other directly.
#
# Dependencies:
# pip install sounddevice numpy

import argparse

from nofi.audio import SoundDeviceInput, SoundDeviceOutput
from nofi.config import ModemConfig
from nofi.errors import DeviceError
from nofi.framing import Direction
from nofi.logs import console
from nofi.station import Station
from nofi.tones import MODES, get_mode


def show_message(message):
    if message.direction is Direction.INBOUND:
        print(f"\n<< #{message.id}: {message.text}")
    elif message.direction is Direction.OUTBOUND:
        print(f">> #{message.id}: {message.text}")
    else:
        print(f"-- {message.text}")


def show_partial(text):
    if text:
        print(f"\r... {text}", end='', flush=True)


def show_relay_queue(station):
    entries = station.relay_queue.entries()
    if not entries:
        print("No messages in relay queue")
        return
    for entry in entries:
        print(f"  #{entry.id} [{entry.status.value}] {entry.text}")


def send_message(station):
    text = input("Enter text to send: ")
    if not text.strip():
        print("Input is empty.")
        return
    try:
        station.send(text)
    except DeviceError as e:
        print(f"Error: {e}")


def relay_message(station):
    show_relay_queue(station)
    msg_id = input("Relay which id? ").strip()
    if not msg_id:
        return
    try:
        if not station.relay_now(msg_id):
            print("Nothing relayed.")
    except DeviceError as e:
        print(f"Error: {e}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Text chat over sound with relaying")
    parser.add_argument('--mode', choices=[m.name for m in MODES], default='audible',
                        help="frequency band to transmit in (receiving listens to all)")
    parser.add_argument('--threshold', type=float, default=None, help="signal gate on the 0-255 scale")
    parser.add_argument('--silence-timeout', type=float, default=None, help="seconds of silence that end a message")
    parser.add_argument('--debounce', type=int, default=None, help="consecutive samples needed to accept a tone")
    parser.add_argument('--input-device', default=None)
    parser.add_argument('--output-device', default=None)
    return parser.parse_args(argv)


def build_config(args):
    overrides = {}
    if args.threshold is not None:
        overrides['threshold'] = args.threshold
    if args.silence_timeout is not None:
        overrides['silence_timeout'] = args.silence_timeout
    if args.debounce is not None:
        overrides['marker_debounce'] = args.debounce
        overrides['char_debounce'] = args.debounce
    return ModemConfig(**overrides)


# --- Main Application Logic ---
def main(argv=None):
    args = parse_args(argv)
    config = build_config(args)
    station = Station(SoundDeviceOutput(config.sample_rate, device=args.output_device),
                      mode=get_mode(args.mode), config=config,
                      on_message=show_message, on_partial=show_partial, on_log=console)

    print("--- NoFi Audio Modem ---")
    try:
        station.listen(SoundDeviceInput(station.on_reading, sample_rate=config.sample_rate,
                                        device=args.input_device))
    except DeviceError as e:
        print(f"Error: {e}")
        return 1
    station.start()

    try:
        while True:
            choice = input("\nChoose an option:\n1. Send text\n2. Show relay queue\n"
                           "3. Relay now\n4. Clear relay queue\n5. Exit\n> ").strip()
            if choice == '1':
                send_message(station)
            elif choice == '2':
                show_relay_queue(station)
            elif choice == '3':
                relay_message(station)
            elif choice == '4':
                station.clear_relay_queue()
            elif choice == '5':
                break
            else:
                print("Invalid choice. Please enter 1-5.")
    except KeyboardInterrupt:
        print("\nStopping.")
    finally:
        station.stop()
    print("Goodbye!")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
