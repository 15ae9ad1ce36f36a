"""Wire constants for the cartridge's USB serial protocol."""

# Command frame marker, sent as [marker, ~marker, opcode, ~opcode]
PACKET_CMD = 0x2B

STATUS_SENTINEL = 0xA5
SERVICE_MODE_SENTINEL = 0xA1

ACK_BLOCK_SIZE = 1024
MAX_ROM_SIZE = 0xF80000
MAX_STRING_LENGTH = 0xFFFF

# Target address space
ADDR_ROM = 0x0000000
ADDR_SRAM = 0x1000000
ADDR_BRAM = 0x1080000
ADDR_CFG = 0x1800000
ADDR_SSR = 0x1802000
ADDR_FIFO = 0x1810000

SIZE_ROMX = 0x1000000
SIZE_SRAM = 0x80000
SIZE_BRAM = 0x80000

# Onboard flash layout
ADDR_FLA_MENU = 0x00000
ADDR_FLA_FPGA = 0x40000
ADDR_FLA_ICOR = 0x80000

# FAT result codes for a missing file or directory
FAT_NO_FILE = 4
FAT_NO_PATH = 5

# Game load handshake
ACK_ROM_READY = ord('r')
ACK_TEST_OK = ord('k')
FIFO_CMD_TEST = b"*t"
FIFO_CMD_SKIP_FPGA = b"*u"
FIFO_CMD_GAME_INFO = b"*g"
GAME_NAME_PREFIX = "USB:"

CMD_STATUS = 0x10
CMD_GET_MODE = 0x11
CMD_IO_RST = 0x12
CMD_GET_VDC = 0x13
CMD_RTC_GET = 0x14
CMD_RTC_SET = 0x15
CMD_FLA_RD = 0x16
CMD_FLA_WR = 0x17
CMD_FLA_WR_SDC = 0x18
CMD_MEM_RD = 0x19
CMD_MEM_WR = 0x1A
CMD_MEM_SET = 0x1B
CMD_MEM_TST = 0x1C
CMD_MEM_CRC = 0x1D
CMD_FPG_USB = 0x1E
CMD_FPG_SDC = 0x1F
CMD_FPG_FLA = 0x20
CMD_FPG_CFG = 0x21
CMD_USB_WR = 0x22
CMD_FIFO_WR = 0x23
CMD_UART_WR = 0x24
CMD_REINIT = 0x25
CMD_SYS_INF = 0x26
CMD_GAME_CTR = 0x27
CMD_UPD_EXEC = 0x28
CMD_HOST_RST = 0x29

CMD_DISK_INIT = 0xC0
CMD_DISK_RD = 0xC1
CMD_DISK_WR = 0xC2
CMD_F_DIR_OPN = 0xC3
CMD_F_DIR_RD = 0xC4
CMD_F_DIR_LD = 0xC5
CMD_F_DIR_SIZE = 0xC6
CMD_F_DIR_PATH = 0xC7
CMD_F_DIR_GET = 0xC8
CMD_F_FOPN = 0xC9
CMD_F_FRD = 0xCA
CMD_F_FRD_MEM = 0xCB
CMD_F_FWR = 0xCC
CMD_F_FWR_MEM = 0xCD
CMD_F_FCLOSE = 0xCE
CMD_F_FPTR = 0xCF
CMD_F_FINFO = 0xD0
CMD_F_FCRC = 0xD1
CMD_F_DIR_MK = 0xD2
CMD_F_DEL = 0xD3

CMD_USB_RECOV = 0xF0
CMD_RUN_APP = 0xF1
